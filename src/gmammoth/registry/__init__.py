"""On-chain registry views: per-account status and the registered wallet list."""

from gmammoth.registry.status import RegistrationStatusCache
from gmammoth.registry.wallets import RegisteredWallets

__all__ = ["RegistrationStatusCache", "RegisteredWallets"]
