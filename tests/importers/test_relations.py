import pytest

from db.models import Attachment, RepositoryCase, Tag, TestRunCase
from import_engine.relations import (
    RelationSynchronizer, parse_attachments, parse_issues, parse_tags, parse_test_runs,
)
from tests import factories as f


def only_case(env):
    return env.session.query(RepositoryCase).filter_by(project_id=env.project.id).one()


def existing_case(env, **kwargs):
    return f.CaseFactory(
        project_id=env.project.id, repository_id=env.repository.id,
        folder_id=env.folder.id, template_id=env.template.id, state_id=env.draft.id,
        **kwargs,
    )


# ── Parsers ────────────────────────────────────────────────────────────

@pytest.mark.parametrize("raw,expected", [
    ("smoke, ui ,, regression", ["smoke", "ui", "regression"]),
    ('["smoke", " ui ", 3, ""]', ["smoke", "ui"]),
    ("[not json", ["[not json"]),
    ("", []),
    (None, []),
])
def test_parse_tags(raw, expected):
    assert parse_tags(raw) == expected


def test_parse_issues():
    assert parse_issues("BUG-1, BUG-2") == ["BUG-1", "BUG-2"]
    assert parse_issues('["BUG-1", {"name": "BUG-2"}, {"title": "x"}]') == ["BUG-1", "BUG-2"]


def test_parse_test_runs():
    raw = '["Run A", {"name": "Run B"}, {"testRun": {"name": "Run C"}}, 4]'
    assert parse_test_runs(raw) == ["Run A", "Run B", "Run C"]
    assert parse_test_runs("Run A,Run B") == ["Run A", "Run B"]


def test_parse_attachments_fills_defaults_and_drops_items_without_url():
    raw = '[{"url": "https://files/a.png", "size": "12", "mimeType": "image/png"},' \
          ' {"name": "no url"}, "junk"]'
    assert parse_attachments(raw) == [{
        "url": "https://files/a.png", "name": "Untitled", "note": None,
        "size": 12, "mime_type": "image/png",
    }]


@pytest.mark.parametrize("raw", ["not json", '{"url": "x"}', "", None])
def test_parse_attachments_needs_a_json_array(raw):
    assert parse_attachments(raw) == []


# ── Through the importer ───────────────────────────────────────────────

def test_tags_are_linked_and_created_on_demand(env, do_import):
    f.TagFactory(name="smoke")
    do_import("Name,Tags\nCase,\"smoke, ui\"\n", [("Name", "name"), ("Tags", "tags")])

    assert sorted(t.name for t in only_case(env).tags) == ["smoke", "ui"]
    assert env.session.query(Tag).filter_by(name="smoke").count() == 1


def test_unknown_issues_and_runs_are_skipped(env, do_import):
    f.IssueFactory(name="BUG-1")
    f.TestRunFactory(project_id=env.project.id, name="Sprint 1")
    events = do_import(
        "Name,Issues,Runs\nCase,\"BUG-1, BUG-404\",\"Sprint 1, Sprint 99\"\n",
        [("Name", "name"), ("Issues", "issues"), ("Runs", "testRuns")],
    )

    assert events[-1].imported_count == 1
    case = only_case(env)
    assert [i.name for i in case.issues] == ["BUG-1"]
    assert env.session.query(TestRunCase).filter_by(repository_case_id=case.id).count() == 1


def test_test_runs_of_other_projects_are_not_linked(env, do_import):
    other = f.ProjectFactory()
    f.TestRunFactory(project_id=other.id, name="Sprint 1")
    do_import("Name,Runs\nCase,Sprint 1\n", [("Name", "name"), ("Runs", "testRuns")])
    case = only_case(env)
    assert env.session.query(TestRunCase).filter_by(repository_case_id=case.id).count() == 0


def test_attachments(env, do_import):
    text = ('Name\tFiles\n'
            'Case\t[{"url": "https://files/x.png", "name": "x.png", "size": 10, '
            '"mimeType": "image/png"}, {"name": "no url"}]\n')
    do_import(text, [("Name", "name"), ("Files", "attachments")], delimiter="\t")

    att, = env.session.query(Attachment).filter_by(test_case_id=only_case(env).id)
    assert (att.url, att.name, att.size, att.mime_type) == \
        ("https://files/x.png", "x.png", 10, "image/png")
    assert att.created_by_id == env.user.id


def test_malformed_attachments_still_import_the_case(env, do_import):
    events = do_import("Name,Files\nCase,not json\n", [("Name", "name"), ("Files", "attachments")])
    assert events[-1].imported_count == 1
    assert env.session.query(Attachment).count() == 0


def test_update_clears_then_recreates_mapped_relations(env, do_import):
    old_tag = f.TagFactory(name="old")
    issue = f.IssueFactory(name="BUG-7")
    case = existing_case(env, tags=[old_tag], issues=[issue])
    env.session.add(Attachment(test_case_id=case.id, url="https://files/old.txt"))
    env.session.commit()

    do_import(f"ID,Name,Tags,Files\n{case.id},Case,new,[]\n",
              [("ID", "id"), ("Name", "name"), ("Tags", "tags"), ("Files", "attachments")])

    updated = only_case(env)
    assert [t.name for t in updated.tags] == ["new"]
    assert env.session.query(Attachment).filter_by(test_case_id=case.id).count() == 0
    # issues were not mapped, so they are left alone
    assert [i.name for i in updated.issues] == ["BUG-7"]


def test_failing_item_is_dropped_without_failing_the_case(env):
    case = existing_case(env)
    sync = RelationSynchronizer(env.session, env.project.id, env.user.id)

    def boom():
        raise RuntimeError("constraint violated")

    sync._isolated(case, "tag", "broken", boom)
    env.session.commit()

    assert sync.dropped == 1
    assert env.session.get(RepositoryCase, case.id).name == case.name


def test_update_with_blank_tags_cell_clears_tags(env, do_import):
    case = existing_case(env, tags=[f.TagFactory(name="old")])

    events = do_import(f"ID,Name,Tags\n{case.id},Case,\n",
                       [("ID", "id"), ("Name", "name"), ("Tags", "tags")])

    assert events[-1].imported_count == 1
    assert only_case(env).tags == []
