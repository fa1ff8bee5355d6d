"""Pytest configuration and fixtures."""

import logging
import os

import pytest

from forms.lib import validators as v
from forms.lib.controller import FormController
from forms.lib.drafts import MemoryDraftStore
from forms.lib.resilience import RetryConfig
from forms.lib.settings import EngineSettings
from forms.lib.timers import ManualScheduler
from forms.models import Condition, FieldDescriptor, FieldKind, FieldOption, FormDescriptor


def full_name(values):
    parts = [values.get("first_name") or "", values.get("last_name") or ""]
    return " ".join(p for p in parts if p).strip()


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep FORMS_* variables and stray .env files from leaking into tests."""
    for key in list(os.environ):
        if key.startswith("FORMS_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)


@pytest.fixture
def restore_root_logging():
    """Undo setup_logging's changes to the root logger.

    pytest manages its own capture handlers per test phase, so only the
    plain handlers setup_logging installs are removed here.
    """
    root = logging.getLogger()
    level = root.level
    yield root
    for handler in root.handlers[:]:
        if type(handler) in (logging.StreamHandler, logging.FileHandler):
            root.removeHandler(handler)
            handler.close()
    root.setLevel(level)


@pytest.fixture
def settings():
    return EngineSettings(debounce_seconds=0.3, autosave_delay_seconds=1.0)


@pytest.fixture
def scheduler():
    return ManualScheduler()


@pytest.fixture
def draft_store():
    return MemoryDraftStore(retry=RetryConfig.none())


def build_signup_form(form_id="signup", autosave=False):
    return FormDescriptor(
        fields=[
            FieldDescriptor("first_name", default="", validators=[v.required()]),
            FieldDescriptor("last_name", default=""),
            FieldDescriptor(
                "full_name",
                compute_from=["first_name", "last_name"],
                compute_fn=full_name,
            ),
            FieldDescriptor(
                "email",
                default="",
                validators=[v.required(), v.email()],
            ),
            FieldDescriptor("has_account", kind=FieldKind.BOOLEAN, default=False),
            FieldDescriptor(
                "username",
                default="",
                validators=[v.required()],
                visible_when=[Condition.equals("has_account", True)],
            ),
            FieldDescriptor(
                "plan",
                kind=FieldKind.CHOICE,
                default="free",
                options=[FieldOption("Free", "free"), FieldOption("Pro", "pro")],
            ),
        ],
        form_id=form_id,
        autosave=autosave,
    )


@pytest.fixture
def signup_form():
    return build_signup_form()


@pytest.fixture
def make_controller(settings, scheduler, draft_store):
    """Factory for controllers sharing the test scheduler and draft store."""
    created = []

    def _make(descriptor=None, **kwargs):
        kwargs.setdefault("settings", settings)
        kwargs.setdefault("scheduler", scheduler)
        kwargs.setdefault("draft_store", draft_store)
        controller = FormController(descriptor, **kwargs)
        created.append(controller)
        return controller

    yield _make

    for controller in created:
        controller.dispose()


@pytest.fixture
def controller(make_controller, signup_form):
    return make_controller(signup_form)
