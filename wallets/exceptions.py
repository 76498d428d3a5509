class InsufficientBalance(ValueError):
    """A debit-like operation would drive the wallet balance below zero."""

    code = "insufficient_balance"

    def __init__(self, balance, amount):
        self.balance = balance
        self.amount = amount
        super().__init__(
            f"Insufficient balance: available {balance}, requested {amount}."
        )
