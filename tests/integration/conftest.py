"""Fixtures for end-to-end flows."""

import pytest

from forms.lib import validators as v
from forms.models import Condition, FieldDescriptor, FieldKind, FieldOption, FormDescriptor


@pytest.fixture
def aws_credentials(monkeypatch):
    """Mock AWS credentials for moto."""
    monkeypatch.setenv("AWS_ACCESS_KEY_ID", "testing")
    monkeypatch.setenv("AWS_SECRET_ACCESS_KEY", "testing")
    monkeypatch.setenv("AWS_SECURITY_TOKEN", "testing")
    monkeypatch.setenv("AWS_SESSION_TOKEN", "testing")
    monkeypatch.setenv("AWS_DEFAULT_REGION", "us-east-1")
    monkeypatch.delenv("AWS_ENDPOINT_URL", raising=False)


@pytest.fixture
def onboarding_steps():
    """Three-step onboarding wizard: account, profile, confirmation."""
    return [
        FormDescriptor(
            title="Account",
            fields=[
                FieldDescriptor("email", default="", validators=[v.required(), v.email()]),
                FieldDescriptor("password", default="", validators=[v.required(), v.min_length(8)]),
            ],
        ),
        FormDescriptor(
            fields=[
                FieldDescriptor("country", kind=FieldKind.CHOICE, default="US",
                                options=[FieldOption("United States", "US"), FieldOption("Canada", "CA")]),
                FieldDescriptor(
                    "state",
                    default="",
                    validators=[v.required()],
                    visible_when=[Condition.equals("country", "US")],
                ),
            ],
        ),
        FormDescriptor(
            title="Confirm",
            fields=[
                FieldDescriptor("accept_terms", kind=FieldKind.BOOLEAN, default=False,
                                validators=[v.equal_to(True, "You must accept the terms")]),
            ],
        ),
    ]
