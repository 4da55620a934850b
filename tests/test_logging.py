import logging

from flask.logging import default_handler

from santamatch.services.notifications import LogTransport, notify_members
from santamatch.services.stores import Contact

from .conftest import RecordingTransport


def test_package_logger_has_a_handler_at_the_configured_level(app):
    logger = logging.getLogger("santamatch")
    assert default_handler in logger.handlers
    assert logger.getEffectiveLevel() == logging.INFO


def test_log_transport_writes_the_mail_at_info(app, caplog):
    caplog.set_level(logging.INFO, logger="santamatch")

    LogTransport().send("ann@example.com", "Your group is matched!", "Hi Ann")

    records = [r for r in caplog.records if r.name == "santamatch.services.notifications"]
    assert len(records) == 1
    assert records[0].levelno == logging.INFO
    assert "ann@example.com" in records[0].getMessage()


def test_failed_send_is_logged_with_traceback(app, caplog):
    caplog.set_level(logging.INFO, logger="santamatch")
    contacts = [
        Contact(id="A", address="ann@example.com", display_name="Ann"),
        Contact(id="B", address="ben@example.com", display_name="Ben"),
    ]

    sent, failed = notify_members(
        RecordingTransport(fail_for={"ben@example.com"}),
        contacts,
        "Office Party",
        "https://santa.example/groups/G",
    )

    assert (sent, failed) == (1, ["B"])
    errors = [r for r in caplog.records if r.levelno == logging.ERROR]
    assert len(errors) == 1
    assert "B" in errors[0].getMessage()
    assert errors[0].exc_info is not None


def test_successful_match_is_logged(app, make_group, caplog):
    caplog.set_level(logging.INFO, logger="santamatch")
    g, users = make_group(["Ann", "Ben", "Cat"])

    with app.test_client(user=users[0]) as client:
        assert client.post(f"/api/groups/{g.id}/execute-matching").status_code == 200

    messages = [r.getMessage() for r in caplog.records if r.name == "santamatch.services.matching"]
    assert f"Matched group {g.id} (3 members)" in messages
