"""Base contract enforcement utility.

require() is the single enforcement mechanism for all stage contracts.
"""

from biomosaic.contracts.failure import ContractViolation


def require(condition: bool, message: str) -> None:
    """Enforce a stage contract.

    Called at stage boundaries to verify that the preceding stage
    produced what it guarantees. No recovery, no fallback, no silence.

    Parameters
    ----------
    condition : bool
        The invariant that must be true.
    message : str
        Explanation of the violation (for the run log).

    Raises
    ------
    ContractViolation
        If condition is False.

    Examples
    --------
    >>> require(stage.paths, "Stage contract: at least one raster expected")
    """
    if not condition:
        raise ContractViolation(message)
