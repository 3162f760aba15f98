"""
Food Diary CLI - Main entry point.

Sends control commands to the arrival service over MQTT, and can simulate
device events (location fixes, authorization changes, notification taps).
"""

import argparse
import json
import sys
import yaml
from pathlib import Path
from typing import Any, Dict, List, Optional

from fooddiary_mqtt.schemas import (
    AuthorizationChanged,
    AuthorizationStatus,
    LocationFix,
    NotificationTapped,
)

from .mqtt_client import MQTTCommandClient

COMMAND_TOPIC = "fooddiary/control/{device_id}/commands"
STATUS_TOPIC = "fooddiary/control/{device_id}/status"
DEVICE_TOPIC = "fooddiary/device/{device_id}/{kind}"

SIMPLE_COMMANDS = {
    'list-places': 'list_places',
    'reconcile': 'reconcile',
    'dismiss-banner': 'dismiss_banner',
    'take-pending': 'take_pending_place',
    'status': 'status',
}


def load_yaml_config(config_path: str) -> Dict[str, Any]:
    """
    Load a YAML command file.

    Raises:
        FileNotFoundError: If config file doesn't exist
        ValueError: If YAML is invalid or not a mapping
    """
    path = Path(config_path)

    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    try:
        with open(path) as f:
            config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid YAML in {config_path}: {e}") from e

    if not isinstance(config, dict):
        raise ValueError(f"Command file must contain a mapping: {config_path}")
    return config


def _with_location(command: Dict[str, Any], args: argparse.Namespace) -> Dict[str, Any]:
    if args.lat is not None and args.lon is not None:
        command['latitude'] = args.lat
        command['longitude'] = args.lon
    return command


def build_command(args: argparse.Namespace) -> Dict[str, Any]:
    """Translate parsed arguments into a control command payload."""
    if args.command == 'send':
        return load_yaml_config(args.config)
    if args.command == 'save-place':
        command = {
            'command': 'save_place',
            'name': args.name,
            'latitude': args.latitude,
            'longitude': args.longitude,
        }
        if args.notes is not None:
            command['notes'] = args.notes
        return command
    if args.command == 'update-notes':
        return {'command': 'update_notes', 'place_id': args.place_id, 'notes': args.notes}
    if args.command == 'delete-place':
        return {'command': 'delete_place', 'place_id': args.place_id}
    if args.command in ('foreground', 'refresh', 'search'):
        return _with_location({'command': args.command}, args)
    if args.command in SIMPLE_COMMANDS:
        return {'command': SIMPLE_COMMANDS[args.command]}
    raise ValueError(f"Not a control command: {args.command}")


def build_device_event(args: argparse.Namespace) -> Dict[str, Any]:
    """Translate a device simulation subcommand into {"kind", "payload"}."""
    if args.command == 'send-location':
        return {'kind': 'location', 'payload': LocationFix(args.latitude, args.longitude).to_dict()}
    if args.command == 'set-authorization':
        event = AuthorizationChanged(AuthorizationStatus(args.status))
        return {'kind': 'authorization', 'payload': event.to_dict()}
    if args.command == 'tap':
        event = NotificationTapped(args.notification_id, {'place_id': args.place_id})
        return {'kind': 'notification_tap', 'payload': event.to_dict()}
    raise ValueError(f"Not a device event: {args.command}")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Food Diary CLI - Send MQTT commands to the arrival service",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Save a place and list saved places
  fooddiary-cli save-place "Joe's Diner" 40.7123 -74.0099 --notes "Get the pie"
  fooddiary-cli list-places

  # Proximity banner
  fooddiary-cli foreground --lat 40.7124 --lon -74.0098
  fooddiary-cli dismiss-banner
  fooddiary-cli refresh

  # Simulate the device
  fooddiary-cli set-authorization always
  fooddiary-cli send-location 40.7123 -74.0099

  # Send a command from YAML
  fooddiary-cli send config/commands/save_place.yaml
"""
    )

    parser.add_argument("--device-id", default="phone_01", help="Target device ID (default: phone_01)")
    parser.add_argument("--broker", default="localhost", help="MQTT broker host (default: localhost)")
    parser.add_argument("--port", type=int, default=1883, help="MQTT broker port (default: 1883)")
    parser.add_argument("--no-wait", action="store_true", help="Do not wait for the service's reply")
    parser.add_argument("--timeout", type=float, default=5.0, help="Reply timeout in seconds (default: 5)")

    subparsers = parser.add_subparsers(dest='command', help='Available commands')

    send = subparsers.add_parser('send', help='Send command from YAML file')
    send.add_argument('config', help='Path to command YAML')

    save_place = subparsers.add_parser('save-place', help='Save a place')
    save_place.add_argument('name')
    save_place.add_argument('latitude', type=float)
    save_place.add_argument('longitude', type=float)
    save_place.add_argument('--notes', default=None)

    update_notes = subparsers.add_parser('update-notes', help='Edit notes of a saved place')
    update_notes.add_argument('place_id')
    update_notes.add_argument('notes')

    delete_place = subparsers.add_parser('delete-place', help='Delete a saved place')
    delete_place.add_argument('place_id')

    for name, help_text in (
        ('foreground', 'App foregrounded: check proximity'),
        ('refresh', 'User refresh (resets banner dismissal)'),
        ('search', 'Search nearby places'),
    ):
        sub = subparsers.add_parser(name, help=help_text)
        sub.add_argument('--lat', type=float, default=None)
        sub.add_argument('--lon', type=float, default=None)

    subparsers.add_parser('list-places', help='List saved places')
    subparsers.add_parser('reconcile', help='Rebuild monitored regions')
    subparsers.add_parser('dismiss-banner', help='Dismiss the proximity banner')
    subparsers.add_parser('take-pending', help='Consume the tapped place')
    subparsers.add_parser('status', help='Query service status')

    send_location = subparsers.add_parser('send-location', help='Simulate a device location fix')
    send_location.add_argument('latitude', type=float)
    send_location.add_argument('longitude', type=float)

    set_auth = subparsers.add_parser('set-authorization', help='Simulate an authorization change')
    set_auth.add_argument('status', choices=[s.value for s in AuthorizationStatus])

    tap = subparsers.add_parser('tap', help='Simulate a notification tap')
    tap.add_argument('notification_id')
    tap.add_argument('place_id')

    return parser


DEVICE_COMMANDS = {'send-location', 'set-authorization', 'tap'}


def main(argv: Optional[List[str]] = None) -> None:
    """Main CLI entry point."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        sys.exit(1)

    client = MQTTCommandClient(broker=args.broker, port=args.port)

    try:
        if args.command in DEVICE_COMMANDS:
            event = build_device_event(args)
            topic = DEVICE_TOPIC.format(device_id=args.device_id, kind=event['kind'])
            client.publish(topic, event['payload'])
            print(f"✅ Device event sent: {event['kind']}")
            return

        command = build_command(args)
        status_topic = None if args.no_wait else STATUS_TOPIC.format(device_id=args.device_id)
        reply = client.send_command(
            COMMAND_TOPIC.format(device_id=args.device_id),
            command,
            status_topic=status_topic,
            timeout=args.timeout,
        )
        print(f"✅ Command sent: {command.get('command', 'unknown')}")
        if reply is not None:
            print(json.dumps(reply, indent=2, ensure_ascii=False))
        elif status_topic is not None:
            print("⚠️ No reply from service (is it running?)", file=sys.stderr)

    except (ConnectionError, FileNotFoundError, ValueError) as e:
        print(f"❌ Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == '__main__':
    main()
