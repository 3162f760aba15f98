#!/usr/bin/env python3
"""
Arrival Service - Entry Point
=============================

This script starts the Food Diary arrival service, which:
- Keeps saved places in a DuckDB store
- Geofence-monitors up to 20 saved places from device location fixes
- Sends an arrival notification when the device enters a monitored place
- Answers control commands (save/list/delete places, proximity banner,
  nearby search) via the MQTT control plane

Usage:
    python run_arrival_service.py --config config/service_config.yaml

Architecture:
    - ArrivalService: Main orchestrator (fooddiary_arrivals)
    - MQTTControlPlane: Command handler (fooddiary_control)
    - NotificationPublisher: Notification capability (fooddiary_mqtt)
    - DeviceEventSubscriber: Device events → EventBus (fooddiary_mqtt)

Lifecycle:
    1. Load configuration from YAML
    2. Setup logging (console + file)
    3. Create store, event bus, monitor, publishers, subscriber
    4. Create ArrivalService and register commands
    5. Connect MQTT clients, start service (permission + first reconcile)
    6. Wait for stop signal (Ctrl+C or SIGTERM)
    7. Graceful shutdown

Signals:
    - SIGTERM: Graceful shutdown
    - SIGINT (Ctrl+C): Graceful shutdown
"""

import argparse
import signal
import sys
import logging
import threading
from pathlib import Path
from typing import Optional

from fooddiary_arrivals import (
    ArrivalService,
    DuckDBPlaceStore,
    EventBus,
    GeofenceMonitor,
    GooglePlacesSearchProvider,
    SearchCoordinator,
    ServiceConfig,
)
from fooddiary_control import MQTTControlPlane
from fooddiary_mqtt import DeviceEventSubscriber, NotificationPublisher, create_logger


# ─────────────────────────────────────────────────────────────────────────────
# Logging Setup
# ─────────────────────────────────────────────────────────────────────────────

def setup_logging(log_file: Optional[Path] = None, level: int = logging.INFO) -> logging.Logger:
    """Console logging, plus a log file when given."""
    if log_file:
        log_file.parent.mkdir(parents=True, exist_ok=True)

    logging.basicConfig(
        level=level,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
        handlers=[
            logging.StreamHandler(sys.stdout),
            *(
                [logging.FileHandler(log_file)]
                if log_file
                else []
            )
        ]
    )

    return logging.getLogger(__name__)


# ─────────────────────────────────────────────────────────────────────────────
# Main Service
# ─────────────────────────────────────────────────────────────────────────────

class ArrivalApp:
    """
    Main application wrapper for ArrivalService.

    Handles:
    - Configuration loading
    - Component initialization (store, MQTT clients, service)
    - Signal handling (SIGTERM, SIGINT)
    - Graceful shutdown
    """

    def __init__(self, config_path: Path, log_file: Optional[Path] = None, verbose: bool = False):
        self.config_path = config_path
        self.logger = setup_logging(log_file, logging.DEBUG if verbose else logging.INFO)

        self.config: Optional[ServiceConfig] = None
        self.store: Optional[DuckDBPlaceStore] = None
        self.control_plane: Optional[MQTTControlPlane] = None
        self.notification_publisher: Optional[NotificationPublisher] = None
        self.subscriber: Optional[DeviceEventSubscriber] = None
        self.service: Optional[ArrivalService] = None

        self._stop_event = threading.Event()
        self._shutdown_requested = False

    def setup(self):
        self.logger.info("=" * 80)
        self.logger.info("🚀 Food Diary Arrival Service - Starting")
        self.logger.info("=" * 80)

        # 1. Configuration
        self.logger.info(f"📄 Loading configuration: {self.config_path}")
        self.config = ServiceConfig.from_yaml(self.config_path)
        mqtt_config = self.config.mqtt_config
        device_id = self.config.device_id
        self.logger.info(f"✅ Configuration loaded (device_id={device_id})")

        # 2. Store, bus, monitor
        self.store = DuckDBPlaceStore.open(self.config.db_path)
        bus = EventBus()
        monitor = GeofenceMonitor(emit=bus.emit, max_regions=self.config.monitoring.max_regions)

        # 3. MQTT clients
        self.logger.info("🔌 Creating MQTT clients")
        self.control_plane = MQTTControlPlane(
            broker_host=mqtt_config.broker,
            broker_port=mqtt_config.port,
            command_topic=self.config.topic("command"),
            status_topic=self.config.topic("status"),
            client_id=f"fooddiary_control_{device_id}",
            username=mqtt_config.username,
            password=mqtt_config.password,
        )
        self.notification_publisher = NotificationPublisher(
            broker_host=mqtt_config.broker,
            broker_port=mqtt_config.port,
            topic=self.config.topic("notification"),
            logger=create_logger("notifications", device_id=device_id),
            client_id=f"fooddiary_notifications_{device_id}",
            username=mqtt_config.username,
            password=mqtt_config.password,
            qos=mqtt_config.qos,
        )
        self.subscriber = DeviceEventSubscriber(
            broker_host=mqtt_config.broker,
            broker_port=mqtt_config.port,
            topics={
                'location': self.config.topic("location"),
                'authorization': self.config.topic("authorization"),
                'notification_tap': self.config.topic("notification_tap"),
            },
            on_location=bus.emit,
            on_authorization=bus.emit,
            on_notification_tap=bus.emit,
            logger=create_logger("device_events", device_id=device_id),
            client_id=f"fooddiary_device_{device_id}",
            username=mqtt_config.username,
            password=mqtt_config.password,
            qos=mqtt_config.qos,
        )

        # 4. Search + service
        provider = GooglePlacesSearchProvider(self.config.search)
        search = SearchCoordinator(provider, max_workers=self.config.search.max_workers)

        self.service = ArrivalService(
            config=self.config,
            store=self.store,
            monitor=monitor,
            notifications=self.notification_publisher,
            bus=bus,
            search=search,
            control_plane=self.control_plane,
        )
        self.service.register_commands(self.control_plane.command_registry)

        self.logger.info(f"  - Notification topic: {self.notification_publisher.topic}")
        self.logger.info(f"  - Command topic: {self.control_plane.command_topic}")
        self.logger.info("✅ Service created")
        self.logger.info("=" * 80)

    def run(self):
        """Connect, start and block until shutdown is requested."""
        if not self.service:
            raise RuntimeError("Service not initialized. Call setup() first.")

        signal.signal(signal.SIGTERM, self._signal_handler)
        signal.signal(signal.SIGINT, self._signal_handler)

        if not self.control_plane.connect(timeout=5.0):
            raise RuntimeError("Failed to connect to MQTT broker (control plane)")
        if not self.notification_publisher.connect():
            self.logger.warning("⚠️  Notification publisher not connected; arrivals will not be delivered")
        if not self.subscriber.connect():
            self.logger.warning("⚠️  Device subscriber not connected; no location fixes will arrive")

        self.service.start()
        self.control_plane.publish_status("running", self.service.get_status())

        self.logger.info("✅ Service started successfully")
        self.logger.info("Press Ctrl+C to stop")
        self.logger.info("=" * 80)

        self._stop_event.wait()

    def shutdown(self):
        """
        Graceful shutdown of all components.

        Order:
        1. Stop service (event subscriptions, search pool)
        2. Disconnect MQTT clients
        3. Close store
        """
        if self._shutdown_requested:
            self.logger.warning("⚠️  Shutdown already in progress")
            return

        self._shutdown_requested = True

        self.logger.info("=" * 80)
        self.logger.info("🛑 Shutting down arrival service")
        self.logger.info("=" * 80)

        if self.service:
            self.service.stop()
        if self.subscriber:
            self.subscriber.stop()
        if self.notification_publisher:
            self.notification_publisher.disconnect()
        if self.control_plane:
            self.control_plane.publish_status("stopped")
            self.control_plane.disconnect()
        if self.store:
            self.store.close()

        self._stop_event.set()
        self.logger.info("✅ Shutdown complete")

    def _signal_handler(self, signum, frame):
        signal_name = signal.Signals(signum).name
        self.logger.info(f"\n⚠️  Received signal {signal_name} ({signum})")
        self.shutdown()


# ─────────────────────────────────────────────────────────────────────────────
# CLI
# ─────────────────────────────────────────────────────────────────────────────

def parse_args(argv=None):
    parser = argparse.ArgumentParser(
        description="Food Diary Arrival Service - geofence arrival notifications over MQTT",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Start with default config
  python run_arrival_service.py --config config/service_config.yaml

  # Console logging only, with debug output
  python run_arrival_service.py --config config/service_config.yaml --no-log-file -v
        """
    )

    parser.add_argument('--config', type=Path, required=True, help='Path to service configuration YAML file')
    parser.add_argument('--log-file', type=Path, default=Path('logs/arrival_service.log'),
                        help='Path to log file (default: logs/arrival_service.log)')
    parser.add_argument('--no-log-file', action='store_true', help='Disable file logging (console only)')
    parser.add_argument('-v', '--verbose', action='store_true', help='Debug logging')

    return parser.parse_args(argv)


def main():
    args = parse_args()

    log_file = None if args.no_log_file else args.log_file

    if not args.config.exists():
        print(f"❌ Error: Configuration file not found: {args.config}", file=sys.stderr)
        sys.exit(1)

    app = ArrivalApp(config_path=args.config, log_file=log_file, verbose=args.verbose)

    try:
        app.setup()
        app.run()
    except (RuntimeError, ValueError, OSError) as e:
        app.logger.error(f"❌ Fatal error: {e}", exc_info=True)
        app.shutdown()
        sys.exit(1)


if __name__ == '__main__':
    main()
