"""Transaction lifecycle: error classification and submission."""

from gmammoth.tx.classifier import classify
from gmammoth.tx.submitter import TransactionSubmitter

__all__ = ["classify", "TransactionSubmitter"]
