from import_engine.contracts import FieldMapping
from import_engine.field_map import is_truthy, loose_int
from import_engine.row_mapper import FieldMapper
from schema import field_types as ft
from schema.templates import FieldChoice, FieldDefinition, TemplateFieldSchema

SCHEMA = TemplateFieldSchema(
    template_id=1,
    template_name="Default",
    fields=(
        FieldDefinition(1, "description", "Description", ft.TEXT_LONG),
        FieldDefinition(2, "priority", "Priority", ft.DROPDOWN,
                        options=(FieldChoice(10, "High"), FieldChoice(11, "Low"))),
        FieldDefinition(3, "points", "Story Points", ft.INTEGER),
        FieldDefinition(4, "testSteps", "Test Steps", ft.STEPS),
    ),
)


def mapper(*pairs):
    return FieldMapper(SCHEMA, [FieldMapping(c, t) for c, t in pairs])


def test_loose_int():
    assert loose_int("12") == 12
    assert loose_int(" 12h") == 12
    assert loose_int("abc") is None
    assert loose_int("") is None
    assert loose_int(None) is None


def test_is_truthy():
    assert is_truthy("Yes") and is_truthy("1")
    assert not is_truthy("no") and not is_truthy(None)


def test_reserved_targets_fill_dedicated_slots():
    row = {
        "Title": " Login ", "Ref": "42", "Est": "abc", "Auto": "yes",
        "Path": "UI/Login", "Labels": "smoke, ui", "State": "In Progress",
        "Author": "alice@example.com", "When": "2024-01-01", "Ver": "3",
    }
    mapped = mapper(
        ("Title", "name"), ("Ref", "id"), ("Est", "estimate"), ("Auto", "automated"),
        ("Path", "folder"), ("Labels", "tags"), ("State", "workflowState"),
        ("Author", "createdBy"), ("When", "createdAt"), ("Ver", "version"),
    ).map_row(row, 1)

    cr = mapped.case_row
    assert not mapped.errors
    assert cr.name == "Login"
    assert cr.external_id == 42
    assert cr.estimate is None
    assert cr.automated is True
    assert cr.folder_path == "UI/Login"
    assert cr.tags == "smoke, ui"
    assert cr.workflow_state == "In Progress"
    assert cr.created_by == "alice@example.com"
    assert cr.created_at == "2024-01-01"
    assert cr.version == 3


def test_custom_fields_match_system_or_display_name_case_insensitively():
    row = {"Desc": "Body", "Prio": "high", "Pts": "5"}
    mapped = mapper(("Desc", "DESCRIPTION"), ("Prio", "priority"),
                    ("Pts", "story points")).map_row(row, 1)
    assert not mapped.errors
    assert mapped.case_row.field_values[2] == 10
    assert mapped.case_row.field_values[3] == 5
    assert mapped.case_row.field_values[1]["type"] == "doc"


def test_validation_errors_are_collected_with_display_name():
    mapped = mapper(("Prio", "priority"), ("Pts", "points")).map_row(
        {"Prio": "Urgent", "Pts": "many"}, 7)
    assert [(e.row, e.field) for e in mapped.errors] == [(7, "Priority"), (7, "Story Points")]
    assert mapped.failed_fields == {2, 3}


def test_steps_typed_field_goes_to_the_steps_slot():
    mapped = mapper(("S", "Test Steps")).map_row({"S": "1. Open | Shown"}, 1)
    assert 4 not in mapped.case_row.field_values
    assert len(mapped.case_row.steps) == 1


def test_reserved_steps_target():
    mapped = mapper(("S", "steps")).map_row({"S": "Open\nClose"}, 1)
    assert [s.order for s in mapped.case_row.steps] == [0, 1]


def test_unknown_targets_are_ignored():
    mapped = mapper(("X", "nonexistent")).map_row({"X": "value"}, 1)
    assert not mapped.errors
    assert mapped.case_row.field_values == {}


def test_headerless_column_reference():
    mapped = mapper(("Column 2", "name")).map_row({"Column 1": "x", "Column 2": "Case"}, 1)
    assert mapped.case_row.name == "Case"
    mapped = mapper(("2", "name")).map_row({"Column 1": "x", "Column 2": "Case"}, 1)
    assert mapped.case_row.name == "Case"


def test_blank_relation_cells_stay_mapped():
    m = mapper(("Labels", "tags"), ("Files", "attachments"), ("State", "workflowState"))
    mapped = m.map_row({"Labels": " ", "Files": "", "State": ""}, 1)
    assert mapped.case_row.tags == ""
    assert mapped.case_row.attachments == ""
    assert mapped.case_row.issues is None
    assert mapped.case_row.workflow_state is None
