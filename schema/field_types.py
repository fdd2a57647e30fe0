"""
schema.field_types - Type tags a template field can carry.

The tag strings are stored verbatim in case_fields.type_tag and key
the validator table in import_engine.validators.
"""

TEXT_STRING  = "Text String"
TEXT_LONG    = "Text Long"
INTEGER      = "Integer"
NUMBER       = "Number"
CHECKBOX     = "Checkbox"
DROPDOWN     = "Dropdown"
MULTI_SELECT = "Multi-Select"
LINK         = "Link"
STEPS        = "Steps"

ALL_TYPES = (
    TEXT_STRING, TEXT_LONG, INTEGER, NUMBER, CHECKBOX,
    DROPDOWN, MULTI_SELECT, LINK, STEPS,
)
