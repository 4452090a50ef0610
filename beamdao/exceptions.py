"""
BeamDAO Exceptions

Exception classes for the deployment tooling. Contract reverts live beside
the contracts (see `beamdao.contracts.base.ContractError`).
"""


class BeamDAOException(Exception):
    """Base exception for BeamDAO tooling."""
    pass


class ConfigurationError(BeamDAOException):
    """Configuration error."""
    pass


class DeploymentError(BeamDAOException):
    """
    A deployment step failed.

    `step` names the pipeline step that aborted the run; the original
    failure is chained as `__cause__`.
    """

    def __init__(self, step: str, message: str = "Deployment step failed"):
        self.step = step
        self.message = message
        super().__init__(message)

    def __str__(self):
        return f"{self.message}. Failed step: {self.step}"


class VerificationError(BeamDAOException):
    """Explorer source verification failed."""
    pass
