# APC UPS Battery Status - MQTT Client
# Author: IntelligentToasters
# License: GNU General Public License v3.0
#
# Polls an APC UPS through apcupsd and publishes its battery service
# (level, charging state, low battery) to an MQTT broker for HomeAssistant
# integration.
#
# This program is free software: you can redistribute it and/or modify
# it under the terms of the GNU General Public License as published by
# the Free Software Foundation, either version 3 of the License, or
# (at your option) any later version.
#
# This program is distributed in the hope that it will be useful,
# but WITHOUT ANY WARRANTY; without even the implied warranty of
# MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
# GNU General Public License for more details.
#
# You should have received a copy of the GNU General Public License
# along with this program.  If not, see <https://www.gnu.org/licenses/>.
"""
MQTT Client for APC UPS battery status
Publishes UPS battery status for HomeAssistant integration

This client runs a UPSMonitor against the local apcupsd daemon and
publishes the three battery characteristics to an MQTT broker, together with
HomeAssistant discovery configs so the UPS appears as one device.

Broker settings default to the MQTT_BROKER, MQTT_PORT, MQTT_USERNAME and
MQTT_PASSWORD environment variables.

Usage:
    apcups-mqtt --ups-host 127.0.0.1 --ups-port 3551 --interval 5
"""

import json
import os
import time
import signal
import sys
import argparse
import logging
from typing import Dict, Any, Optional

import paho.mqtt.client as mqtt

from .monitor import UPSMonitor, StatusProvider, DEFAULT_HOST, DEFAULT_PORT, DEFAULT_POLL_INTERVAL

log = logging.getLogger(__name__)

# The single UPS exposed by this bridge
DEVICE_ID = "ups1"
DEVICE_NAME = "UPS"


class BatteryServiceTopics:
    """Topic layout for one UPS device."""

    def __init__(self, device_id: str = DEVICE_ID):
        base = f"ups/apcups_{device_id}"
        self.availability = f"{base}/availability"
        self.state = f"{base}/state"
        self.discovery_prefix = f"homeassistant/%s/apcups_{device_id}/%s/config"

    def config_topic(self, component: str, object_id: str) -> str:
        return self.discovery_prefix % (component, object_id)


def build_discovery_configs(topics: BatteryServiceTopics, device_id: str = DEVICE_ID, name: str = DEVICE_NAME) -> Dict[str, Dict[str, Any]]:
    """Return HomeAssistant discovery payloads keyed by ``component/object_id``."""
    device = {
        "identifiers": [f"apcups_{device_id}"],
        "name": name,
        "manufacturer": "APC",
        "model": "apcupsd",
    }
    return {
        "sensor/battery_level": {
            "name": f"{name} Battery Level",
            "state_topic": topics.state,
            "value_template": "{{ value_json.battery_level }}",
            "unit_of_measurement": "%",
            "device_class": "battery",
            "state_class": "measurement",
            "availability_topic": topics.availability,
            "unique_id": f"apcups_{device_id}_battery_level",
            "device": device,
        },
        "binary_sensor/charging": {
            "name": f"{name} Charging",
            "state_topic": topics.state,
            "value_template": "{{ 'ON' if value_json.charging else 'OFF' }}",
            "device_class": "battery_charging",
            "availability_topic": topics.availability,
            "unique_id": f"apcups_{device_id}_charging",
            "device": device,
        },
        "binary_sensor/low_battery": {
            "name": f"{name} Low Battery",
            "state_topic": topics.state,
            "value_template": "{{ 'ON' if value_json.low_battery else 'OFF' }}",
            "device_class": "battery",
            "availability_topic": topics.availability,
            "unique_id": f"apcups_{device_id}_low_battery",
            "device": device,
        },
    }


def build_state(provider: StatusProvider) -> Dict[str, int]:
    """Read the three battery characteristics from a status provider."""
    return {
        "battery_level": provider.get_battery_level(),
        "charging": provider.get_charging_state(),
        "low_battery": provider.get_low_battery_state(),
    }


class BatteryMQTTClient:
    def __init__(self, monitor: UPSMonitor, broker: str = "localhost", port: int = 1883, username: Optional[str] = None, password: Optional[str] = None, device_id: str = DEVICE_ID):
        self.monitor = monitor
        self.broker = broker
        self.mqtt_port = port
        self.username = username
        self.password = password
        self.device_id = device_id
        self.topics = BatteryServiceTopics(device_id)
        self.client = mqtt.Client(mqtt.CallbackAPIVersion.VERSION2, client_id=f"apcups_{device_id}_client")
        self.running = True

        # Track UPS reachability for the availability topic
        self.ups_was_available = True

        # Set up callbacks
        self.client.on_connect = self.on_connect
        self.client.on_disconnect = self.on_disconnect

    def on_connect(self, client, userdata, connect_flags, reason_code, properties):
        """Callback for when the client connects to the broker"""
        if reason_code == 0:
            log.info(f"Connected to MQTT broker at {self.broker}:{self.mqtt_port}")
            # (re)publish discovery so HomeAssistant picks the device up after a broker restart
            self.publish_config()
            self.publish_availability(self.ups_was_available)
        else:
            log.error(f"Failed to connect to MQTT broker, return code {reason_code}")

    def on_disconnect(self, client, userdata, disconnect_flags, reason_code, properties):
        """Callback for when the client disconnects from the broker"""
        log.info(f"Disconnected from MQTT broker (code: {reason_code})")

    def publish_config(self):
        """Publish battery service configurations for HomeAssistant autodiscovery"""
        log.debug("Publishing discovery configurations...")
        for key, config in build_discovery_configs(self.topics, self.device_id, self.monitor.name).items():
            component, object_id = key.split("/", 1)
            self.client.publish(self.topics.config_topic(component, object_id), json.dumps(config), qos=1, retain=True)
            log.debug(f"Published config for {key}")

    def publish_availability(self, available: bool):
        payload = "online" if available else "offline"
        result = self.client.publish(self.topics.availability, payload, qos=1, retain=True)
        if result.rc == mqtt.MQTT_ERR_SUCCESS:
            log.debug(f"Published: {self.topics.availability} = {payload}")
        else:
            log.error(f"ERROR publishing availability: {mqtt.error_string(result.rc)}")

    def publish_state(self, state_data: Dict[str, int]):
        """Publish current battery state"""
        result = self.client.publish(self.topics.state, json.dumps(state_data), qos=1, retain=True)
        if result.rc != mqtt.MQTT_ERR_SUCCESS:
            log.error(f"ERROR publishing state: {mqtt.error_string(result.rc)}")
            return
        log.debug(f"Published state: {json.dumps(state_data)}")

    def update(self):
        """Publish availability changes and the latest battery state once."""
        ups_is_available = self.monitor.get_connection_status().get("last_error") is None
        if ups_is_available != self.ups_was_available:
            if ups_is_available:
                log.info("UPS reachable again")
            else:
                log.info(f"UPS unreachable: {self.monitor.get_connection_status().get('last_error')}")
            self.publish_availability(ups_is_available)
            self.ups_was_available = ups_is_available
        self.publish_state(build_state(self.monitor))

    def connect(self):
        """Start the UPS monitor and connect to the MQTT broker"""
        self.monitor.start()

        if self.username and self.password:
            self.client.username_pw_set(self.username, self.password)
        self.client.will_set(self.topics.availability, "offline", qos=1, retain=True)

        try:
            log.debug(f"Connecting to MQTT broker at {self.broker}:{self.mqtt_port}...")
            self.client.connect(self.broker, self.mqtt_port, keepalive=60)
            self.client.loop_start()
            return True
        except Exception as e:
            log.error(f"Failed to connect to MQTT broker: {e}")
            self.monitor.stop()
            return False

    def disconnect(self):
        """Disconnect from MQTT broker and stop polling the UPS"""
        log.info("Shutting down...")
        self.running = False
        self.client.publish(self.topics.availability, "offline", qos=1, retain=True)
        time.sleep(0.5)  # Give publish time to complete
        self.client.loop_stop()
        self.client.disconnect()
        self.monitor.stop()

    def run(self, interval=DEFAULT_POLL_INTERVAL):
        """Main loop - publish the battery status to MQTT every `interval` seconds"""
        if not self.connect():
            return

        log.info(f"Publishing UPS battery status every {interval} second(s)...")
        log.info("Press Ctrl+C to stop")

        try:
            while self.running:
                self.update()
                time.sleep(interval)
        except KeyboardInterrupt:
            log.info("Interrupted by user")
            self.disconnect()

    def signal_handler(self, sig, frame):
        """Handle termination signals gracefully (SIGINT from Ctrl+C, SIGTERM from kill)"""
        self.disconnect()
        sys.exit(0)


def main(argv=None):
    """Main entry point"""
    parser = argparse.ArgumentParser(description="MQTT Client for APC UPS battery status")
    parser.add_argument("--ups-host", default=DEFAULT_HOST, help=f"apcupsd host (default: {DEFAULT_HOST})")
    parser.add_argument("--ups-port", default=DEFAULT_PORT, type=int, help=f"apcupsd NIS port (default: {DEFAULT_PORT})")
    parser.add_argument("--interval", default=DEFAULT_POLL_INTERVAL, type=float, help=f"Poll and publish interval in seconds (default: {DEFAULT_POLL_INTERVAL})")
    parser.add_argument("--name", default=DEVICE_NAME, help=f"Device display name (default: {DEVICE_NAME})")
    parser.add_argument("--broker", default=os.environ.get("MQTT_BROKER", "localhost"), help="MQTT broker host (env MQTT_BROKER)")
    parser.add_argument("--broker-port", default=int(os.environ.get("MQTT_PORT", "1883")), type=int, help="MQTT broker port (env MQTT_PORT)")
    parser.add_argument("--username", default=os.environ.get("MQTT_USERNAME"), help="MQTT username (env MQTT_USERNAME)")
    parser.add_argument("--password", default=os.environ.get("MQTT_PASSWORD"), help="MQTT password (env MQTT_PASSWORD)")
    parser.add_argument("--verbose", action="store_true", help="Enable verbose (DEBUG) logging")
    args = parser.parse_args(argv)

    # Configure logging with timestamp
    log_level = logging.DEBUG if args.verbose else logging.WARNING
    log_format = '[%(asctime)s] %(levelname)s: %(message)s'
    logging.basicConfig(level=log_level, format=log_format, datefmt='%H:%M:%S')

    monitor = UPSMonitor(host=args.ups_host, port=args.ups_port, poll_interval=args.interval, name=args.name)
    mqtt_client = BatteryMQTTClient(
        monitor,
        broker=args.broker,
        port=args.broker_port,
        username=args.username,
        password=args.password,
    )

    # Set up signal handlers for graceful shutdown
    signal.signal(signal.SIGINT, mqtt_client.signal_handler)
    signal.signal(signal.SIGTERM, mqtt_client.signal_handler)

    mqtt_client.run(interval=args.interval)


if __name__ == "__main__":
    main()
