"""Exception hierarchy for gmammoth."""

from __future__ import annotations

from gmammoth.models.records import ClassifiedError


class GMammothError(Exception):
    """Base class for all gmammoth errors."""


class WalletNotConnectedError(GMammothError):
    """No signing capability, or it exposes no active account."""


class SigningRejectedError(GMammothError):
    """The wallet refused to sign the request."""


class SimulationError(GMammothError):
    """The dry-run of a contract call failed against current chain state."""


class BroadcastError(GMammothError):
    """The node refused the signed transaction."""


class ConfirmationError(GMammothError):
    """The transaction was included but did not succeed."""


class NetworkFailureError(GMammothError):
    """The node could not be reached or asked us to try again later."""


class ConfirmationTimeoutError(NetworkFailureError):
    """Finality was not observed within the configured timeout."""


class SubmissionError(GMammothError):
    """A submit() failed. Carries the classification; the cause is chained."""

    def __init__(self, classified: ClassifiedError, function_name: str = "") -> None:
        super().__init__(str(classified))
        self.classified = classified
        self.function_name = function_name
