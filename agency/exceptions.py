# agency/exceptions.py


class AgencyError(Exception):
    """Base class for domain errors raised by agency services."""


class AccountNotFound(AgencyError):
    def __init__(self, kind, account_id):
        self.kind = kind
        self.account_id = account_id
        super().__init__(f"{kind.title()} account {account_id} not found")


class CsvImportError(AgencyError):
    """The uploaded CSV cannot be read at all (missing headers, empty file)."""


class CampaignStateError(AgencyError):
    """Campaign is not in a state that allows the requested transition."""


class InvalidPayload(AgencyError):
    """Request body failed validation; ``errors`` maps section to messages."""

    def __init__(self, errors):
        self.errors = errors
        super().__init__("Invalid payload")
