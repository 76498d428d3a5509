from wallets.models.base import BaseModel
from wallets.models.wallet import Wallet
from wallets.models.transaction import Transaction

__all__ = ["BaseModel", "Wallet", "Transaction"]
