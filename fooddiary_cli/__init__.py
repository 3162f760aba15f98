"""
Food Diary CLI - Command-line interface for the arrival service.

Sends MQTT commands to the service without manually writing JSON, and
simulates device events for local testing.

Usage:
    fooddiary-cli save-place "Joe's Diner" 40.7123 -74.0099
    fooddiary-cli list-places
    fooddiary-cli send-location 40.7123 -74.0099
    fooddiary-cli status
"""

__version__ = "1.0.0"
