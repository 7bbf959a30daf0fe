import dataclasses
import datetime
import decimal
import typing

from catalog import enums as catalog_enums


@dataclasses.dataclass
class CandidateProduct:
    vendor_sku: str
    name: typing.Optional[str] = None
    upc: typing.Optional[str] = None
    brand: typing.Optional[str] = None
    model: typing.Optional[str] = None
    manufacturer_part_number: typing.Optional[str] = None
    category: typing.Optional[str] = None
    subcategory: typing.Optional[str] = None
    description: typing.Optional[str] = None
    weight: typing.Optional[decimal.Decimal] = None
    image_url: typing.Optional[str] = None
    image_reference: typing.Optional[str] = None
    serialized: bool = False
    specifications: typing.Dict = dataclasses.field(default_factory=dict)
    status: int = catalog_enums.ProductStatus.ACTIVE.value

    def identity_key(self) -> str:
        if self.upc:
            return 'upc:{}'.format(self.upc)
        if self.manufacturer_part_number:
            return 'mpn:{}'.format(self.manufacturer_part_number)
        return 'sku:{}'.format(self.vendor_sku)


@dataclasses.dataclass
class SyncSettings:
    duplicate_handling: catalog_enums.DuplicateHandling = catalog_enums.DuplicateHandling.SMART_MERGE
    # Per-field overrides of constants.PRODUCT_FIELD_MERGE_POLICY
    field_policy: typing.Dict[str, catalog_enums.FieldMergePolicy] = dataclasses.field(default_factory=dict)
    image_handling: typing.Optional[catalog_enums.FieldMergePolicy] = None
    description_handling: typing.Optional[catalog_enums.FieldMergePolicy] = None
    retail_vertical_id: typing.Optional[int] = None
    manual_override: bool = False


@dataclasses.dataclass
class MergeDecision:
    action: catalog_enums.MergeAction
    fields: typing.Dict[str, typing.Any] = dataclasses.field(default_factory=dict)
    changed_fields: typing.List[str] = dataclasses.field(default_factory=list)
    reason: str = ''


@dataclasses.dataclass
class MergeOutcome:
    action: catalog_enums.MergeAction
    product_id: int
    upc: typing.Optional[str]
    changed_fields: typing.List[str] = dataclasses.field(default_factory=list)

    @property
    def product_written(self) -> bool:
        return self.action != catalog_enums.MergeAction.SKIP


@dataclasses.dataclass
class SyncJobResult:
    vendor_slug: str
    mode: catalog_enums.CatalogSyncMode
    success: bool = False
    message: str = ''
    products_processed: int = 0
    new_products: int = 0
    updated_products: int = 0
    skipped_products: int = 0
    failed_products: int = 0
    images_updated: int = 0
    errors: typing.List[str] = dataclasses.field(default_factory=list)
    warnings: typing.List[str] = dataclasses.field(default_factory=list)
    started_at: typing.Optional[datetime.datetime] = None
    finished_at: typing.Optional[datetime.datetime] = None


@dataclasses.dataclass
class ImageResult:
    url: str
    source_vendor: str
    priority: int
    fallback_used: bool = False


@dataclasses.dataclass
class ImageBatchStats:
    processed: int = 0
    updated: int = 0
    unchanged: int = 0
    no_image_available: int = 0
    failed: int = 0


@dataclasses.dataclass
class OperationResult:
    success: bool
    message: str
    data: typing.Optional[typing.Dict] = None


@dataclasses.dataclass
class PriorityConsistencyReport:
    is_valid: bool
    total_vendors: int
    issues: typing.List[str] = dataclasses.field(default_factory=list)
    recommendations: typing.List[str] = dataclasses.field(default_factory=list)
