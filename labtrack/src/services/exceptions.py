"""Maintenance-specific exceptions"""


class MaintenanceError(Exception):
    """Base exception for the maintenance engine"""

    pass


class InvalidTransactionDataError(MaintenanceError):
    """Transaction document is malformed and cannot be evaluated"""

    def __init__(self, transaction_id: str, reason: str):
        super().__init__(f"Transaction {transaction_id}: {reason}")
        self.transaction_id = transaction_id
        self.reason = reason


class MaintenancePassError(MaintenanceError):
    """A pass could not commit its writes; later passes were not run"""

    def __init__(self, pass_name: str, cause: Exception):
        super().__init__(f"Maintenance pass '{pass_name}' failed: {cause}")
        self.pass_name = pass_name
        self.cause = cause
