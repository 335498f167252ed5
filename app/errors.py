# app/errors.py
# Role: Error taxonomy shared by the store, the crypto proxy and the routes.

"""
Domain errors.

- ValidationError: a field value breaks the transaction rules (HTTP 400)
- NotFoundError: no transaction with that id is owned by the caller (HTTP 404)
- UpstreamUnavailable: the market-data API failed; only raised inside the
  crypto proxy, which turns it into an empty/absent result
"""


class StashError(Exception):
    """Base class for all application errors."""


class ValidationError(StashError, ValueError):
    def __init__(self, field: str, message: str):
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class NotFoundError(StashError, LookupError):
    def __init__(self, transaction_id: int, user_id: str):
        self.transaction_id = transaction_id
        self.user_id = user_id
        super().__init__(f"transaction {transaction_id} not found")


class UpstreamUnavailable(StashError):
    pass
