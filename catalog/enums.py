import enum


class CompanyStatus(enum.Enum):
    ACTIVE = 1
    INACTIVE = 2


class VendorApiType(enum.Enum):
    REST_API = 1
    SOAP = 2
    FTP = 3
    SFTP = 4


class VendorKind(enum.Enum):
    # Which fetch adapter serves a vendor. MANUAL vendors have no adapter.
    MANUAL = 0
    LIPSEYS = 1
    BILL_HICKS = 2


class CatalogSyncStatus(enum.Enum):
    NEVER_SYNCED = 1
    IN_PROGRESS = 2
    SUCCESS = 3
    ERROR = 4


class CatalogSyncMode(enum.Enum):
    FULL = 1
    INCREMENTAL = 2


class ProductStatus(enum.Enum):
    ACTIVE = 1
    INACTIVE = 2


class DuplicateHandling(enum.Enum):
    IGNORE = 1
    SMART_MERGE = 2
    OVERWRITE = 3


class MergeAction(enum.Enum):
    CREATE = 1
    REPLACE = 2
    MERGE = 3
    SKIP = 4


class FieldMergePolicy(enum.Enum):
    AUTHORITY = 1
    FILL_IF_MISSING = 2
    PREFER_HIGHER_QUALITY = 3
