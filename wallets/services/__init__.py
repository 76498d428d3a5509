from wallets.services.wallet import WalletService

__all__ = ["WalletService"]
