import copy

import pytest

from smtp_relay.errors import BadRequest
from smtp_relay.models import SendMailRequest
from smtp_relay.validation import is_allowed_port, is_blank, is_valid_email, require_sections, validate_send_request


def _request(payload):
    return SendMailRequest.model_validate(payload)


def _reason(payload, **kwargs):
    with pytest.raises(BadRequest) as excinfo:
        validate_send_request(_request(payload), **kwargs)
    return excinfo.value.message


@pytest.mark.parametrize(
    "value",
    ["a@example.com", "first.last+tag@mail.example.co.uk", "x@y.z", "üser@exämple.org"],
)
def test_accepts_minimal_addresses(value):
    assert is_valid_email(value)


@pytest.mark.parametrize(
    "value",
    ["", "plain", "no-at.example.com", "a@localhost", "a@@example.com", "a b@example.com", "a@example.com\n", None, 42],
)
def test_rejects_malformed_addresses(value):
    assert not is_valid_email(value)


def test_returns_config_and_envelope(valid_payload):
    smtp, mail = validate_send_request(_request(valid_payload))
    assert smtp.host == "smtp.example.com"
    assert smtp.port == 587
    assert smtp.password.get_secret_value() == "x"
    assert mail.from_ == "a@example.com"
    assert mail.to == "b@example.com"


@pytest.mark.parametrize("missing", ["smtp", "mail"])
def test_requires_both_sections(valid_payload, missing):
    del valid_payload[missing]
    assert _reason(valid_payload) == "smtp and mail are required"


@pytest.mark.parametrize("field", ["host", "port", "user", "pass"])
def test_incomplete_credentials(valid_payload, field):
    payload = copy.deepcopy(valid_payload)
    del payload["smtp"][field]
    assert _reason(payload) == "Incomplete SMTP credentials"

    payload = copy.deepcopy(valid_payload)
    payload["smtp"][field] = 0 if field == "port" else ""
    assert _reason(payload) == "Incomplete SMTP credentials"


@pytest.mark.parametrize("port", [25, 80, 3000, 8025])
def test_port_outside_allow_list(valid_payload, port):
    valid_payload["smtp"]["port"] = port
    assert _reason(valid_payload) == "SMTP port not allowed"


@pytest.mark.parametrize("port", ["587", "25", 25.5, True, [587], {"n": 587}])
def test_non_integer_port_is_not_allowed(valid_payload, port):
    valid_payload["smtp"]["port"] = port
    assert _reason(valid_payload) == "SMTP port not allowed"


def test_integral_float_port_is_normalised(valid_payload):
    valid_payload["smtp"]["port"] = 465.0
    smtp, _ = validate_send_request(_request(valid_payload))
    assert smtp.port == 465
    assert type(smtp.port) is int
    assert smtp.implicit_tls is True


@pytest.mark.parametrize(
    "port, allowed",
    [(587, True), (587.0, True), ("587", False), (True, False), (None, False), (25, False)],
)
def test_is_allowed_port(port, allowed):
    assert is_allowed_port(port, (465, 587, 2525)) is allowed


@pytest.mark.parametrize("value", [None, False, "", 0, 0.0])
def test_blank_values(value):
    assert is_blank(value)


@pytest.mark.parametrize("value", [{}, [], "0", 1, True, "x"])
def test_non_blank_values(value):
    assert not is_blank(value)


@pytest.mark.parametrize("data", [{}, {"smtp": {"port": "abc"}}, {"smtp": 42, "mail": None}, {"smtp": "", "mail": {}}])
def test_sections_required_before_schema(data):
    with pytest.raises(BadRequest) as excinfo:
        require_sections(data)
    assert excinfo.value.message == "smtp and mail are required"


def test_non_object_sections_read_as_empty():
    sections = require_sections({"smtp": 42, "mail": {"to": "b@example.com"}, "extra": 1})
    assert sections == {"smtp": {}, "mail": {"to": "b@example.com"}}
    assert _reason(sections) == "Incomplete SMTP credentials"


def test_allow_list_is_configurable(valid_payload):
    valid_payload["smtp"]["port"] = 3000
    smtp, _ = validate_send_request(_request(valid_payload), allowed_ports=(465, 587, 2525, 3000))
    assert smtp.port == 3000


def test_port_checked_before_mail_fields(valid_payload):
    valid_payload["smtp"]["port"] = 25
    valid_payload["mail"]["to"] = "not-an-address"
    assert _reason(valid_payload) == "SMTP port not allowed"


@pytest.mark.parametrize("field", ["from", "to", "subject", "body"])
def test_missing_email_fields(valid_payload, field):
    valid_payload["mail"][field] = ""
    assert _reason(valid_payload) == "Missing email fields"


@pytest.mark.parametrize("field", ["from", "to"])
@pytest.mark.parametrize("value", ["b-example.com", "b@example", "b @example.com"])
def test_invalid_email_format(valid_payload, field, value):
    valid_payload["mail"][field] = value
    assert _reason(valid_payload) == "Invalid email format"


def test_secure_flag_overrides_port_default(valid_payload):
    smtp, _ = validate_send_request(_request(valid_payload))
    assert smtp.implicit_tls is False

    valid_payload["smtp"]["port"] = 465
    smtp, _ = validate_send_request(_request(valid_payload))
    assert smtp.implicit_tls is True

    valid_payload["smtp"]["secure"] = False
    smtp, _ = validate_send_request(_request(valid_payload))
    assert smtp.implicit_tls is False

    valid_payload["smtp"]["port"] = 587
    valid_payload["smtp"]["secure"] = True
    smtp, _ = validate_send_request(_request(valid_payload))
    assert smtp.implicit_tls is True


def test_password_is_not_exposed_in_repr(valid_payload):
    smtp, _ = validate_send_request(_request(valid_payload))
    assert "'x'" not in repr(smtp)
    assert "x" not in str(smtp.model_dump()["password"])
