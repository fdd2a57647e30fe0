from types import SimpleNamespace

import pytest

from db import get_session, init_db
from import_engine import FieldMapping, ImportLocation, ImportRequest, run_import
from import_engine.contracts import SINGLE_FOLDER
from schema import field_types as ft
from tests import factories as f


@pytest.fixture
def session(tmp_path):
    """Fresh SQLite database per test; factories write through this session."""
    init_db(f"sqlite:///{tmp_path / 'casedb.sqlite'}")
    s = get_session()
    f.bind_session(s)
    yield s
    s.close()


def add_field(template, system_name, display_name, type_tag, options=(), **kwargs):
    """Create a case field, its options, and attach it to `template`."""
    cf = f.CaseFieldFactory(
        system_name=system_name, display_name=display_name, type_tag=type_tag, **kwargs,
    )
    for i, name in enumerate(options):
        f.FieldOptionFactory(case_field_id=cf.id, name=name, order=i)
    f.TemplateCaseFieldFactory(template_id=template.id, case_field_id=cf.id)
    return cf


@pytest.fixture
def env(session):
    """A project ready to import into: repository, workflows, template, folder."""
    user = f.UserFactory(id="u-1", name="Alice", email="alice@example.com")
    project = f.ProjectFactory(name="Web")
    repository = f.RepositoryFactory(project_id=project.id)
    draft = f.WorkflowFactory(name="Draft", is_default=True, projects=[project])
    in_progress = f.WorkflowFactory(name="In Progress", projects=[project])
    template = f.TemplateFactory(template_name="Default")
    description = add_field(template, "description", "Description", ft.TEXT_LONG)
    priority = add_field(template, "priority", "Priority", ft.DROPDOWN,
                         options=["High", "Medium", "Low"])
    folder = f.FolderFactory(project_id=project.id, repository_id=repository.id,
                             name="Imported")
    return SimpleNamespace(
        session=session, user=user, project=project, repository=repository,
        draft=draft, in_progress=in_progress, template=template,
        description=description, priority=priority, folder=folder,
    )


@pytest.fixture
def do_import(env):
    """
    Run an import and return the list of events.

    `mappings` is a list of (column, target) pairs; any ImportRequest
    field can be overridden by keyword.
    """
    def _run(text, mappings, user_id=None, **overrides):
        params = dict(
            project_id=env.project.id,
            file=text,
            template_id=env.template.id,
            location=ImportLocation(SINGLE_FOLDER, env.folder.id),
            field_mappings=[FieldMapping(c, t) for c, t in mappings],
        )
        params.update(overrides)
        env.session.expire_all()
        events = run_import(env.session, ImportRequest(**params), user_id or env.user.id)
        return list(events)

    return _run

