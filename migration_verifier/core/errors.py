"""Exception hierarchy for the URL verifier."""


class VerifierError(Exception):
    """Base exception for verifier errors."""


class ProbeError(VerifierError):
    """A probe never produced a response (timeout, DNS, refused connection...)."""


class JobNotFoundError(VerifierError):
    """No job exists with the requested id."""


class InvalidTransitionError(VerifierError):
    """A job status change violates the lifecycle."""
