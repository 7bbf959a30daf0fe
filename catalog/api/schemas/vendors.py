from marshmallow import Schema, fields, validate

from catalog import enums as catalog_enums


class UpdateVendorPrioritySchema(Schema):
    priority = fields.Integer(required=True, strict=True)
    # Shift the vendors in between instead of requiring a free slot
    shift = fields.Boolean(required=False, load_default=False)


class TriggerVendorSyncSchema(Schema):
    mode = fields.String(
        required=False,
        load_default="full",
        validate=validate.OneOf(["full", "incremental"]),
    )
    company_id = fields.Integer(required=False, load_default=None)
    duplicate_handling = fields.String(
        required=False,
        load_default=catalog_enums.DuplicateHandling.SMART_MERGE.name,
        validate=validate.OneOf([member.name for member in catalog_enums.DuplicateHandling]),
    )
    manual_override = fields.Boolean(required=False, load_default=False)
    # Run inside the request and answer with the job summary instead of 202
    wait = fields.Boolean(required=False, load_default=False)
