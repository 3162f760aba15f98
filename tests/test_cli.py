"""Tests for CLI argument translation."""

import pytest

from fooddiary_cli.cli import build_command, build_device_event, build_parser, load_yaml_config


def parse(*argv):
    return build_parser().parse_args(list(argv))


def test_save_place_command():
    command = build_command(parse("save-place", "Joe's Diner", "40.7123", "-74.0099", "--notes", "pie"))
    assert command == {
        'command': 'save_place',
        'name': "Joe's Diner",
        'latitude': 40.7123,
        'longitude': -74.0099,
        'notes': "pie",
    }


def test_foreground_with_and_without_location():
    assert build_command(parse("foreground", "--lat", "1.5", "--lon", "2.5")) == {
        'command': 'foreground', 'latitude': 1.5, 'longitude': 2.5,
    }
    assert build_command(parse("refresh")) == {'command': 'refresh'}


@pytest.mark.parametrize("argv, expected", [
    (["list-places"], "list_places"),
    (["take-pending"], "take_pending_place"),
    (["dismiss-banner"], "dismiss_banner"),
    (["delete-place", "p1"], "delete_place"),
])
def test_command_names(argv, expected):
    assert build_command(parse(*argv))['command'] == expected


def test_send_loads_yaml(tmp_path):
    path = tmp_path / "cmd.yaml"
    path.write_text("command: reconcile\n")
    assert build_command(parse("send", str(path))) == {'command': 'reconcile'}


def test_yaml_must_be_mapping(tmp_path):
    path = tmp_path / "cmd.yaml"
    path.write_text("- reconcile\n")
    with pytest.raises(ValueError):
        load_yaml_config(str(path))


def test_device_events():
    location = build_device_event(parse("send-location", "40.7", "-74.0"))
    assert location['kind'] == "location"
    assert location['payload']['latitude'] == 40.7

    auth = build_device_event(parse("set-authorization", "always"))
    assert auth == {'kind': "authorization", 'payload': {'status': "always"}}

    tap = build_device_event(parse("tap", "n1", "p1"))
    assert tap['payload'] == {'notification_id': "n1", 'payload': {'place_id': "p1"}}


def test_invalid_authorization_rejected():
    with pytest.raises(SystemExit):
        parse("set-authorization", "sometimes")
