class InvalidInput(ValueError):
    """Raised when a calculation is given inputs it cannot rate.

    This is raised before any computation starts, for example for a score
    with no hits or an accuracy outside of [0, 1].
    """


class ComputationDomainError(ArithmeticError):
    """Raised when an intermediate value leaves the domain of the formulas.

    A non-positive hit window or a non-finite component is reported with
    this error instead of being returned as a performance value of zero.
    """
