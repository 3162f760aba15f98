"""
CommandRegistry - Explicit command registration pattern

Bounded Context: Command registration and validation
Responsibilities:
  - Register commands with handlers
  - Validate command existence before execution
  - Provide introspection (available_commands, get_help)

Handlers receive the full command payload (a dict) and may return a
JSON-serializable result, which the control plane publishes on the status
topic.

Threading: Thread-safe (uses lock for write operations)
Pattern: Registry with explicit registration
"""

from typing import Any, Callable, Dict, Optional, Set
import threading

CommandHandler = Callable[[Dict[str, Any]], Any]


class CommandNotAvailableError(Exception):
    """Raised when attempting to execute an unregistered command"""
    pass


class CommandRegistry:
    """
    Registry for MQTT commands with explicit registration.

    Key Features:
      - Fail-fast: Invalid commands rejected immediately
      - Introspection: Can query available commands at runtime
      - Self-Documenting: Each command has description

    Thread Safety:
      - Uses lock for write operations (register)
      - Read operations are lock-free (immutable dict reads)

    Example:
        registry = CommandRegistry()
        registry.register('list_places', service.handle_list_places, "List saved places")

        try:
            places = registry.execute('list_places')
        except CommandNotAvailableError as e:
            print(f"Command not available: {e}")
    """

    def __init__(self):
        self._commands: Dict[str, CommandHandler] = {}
        self._descriptions: Dict[str, str] = {}
        self._lock = threading.Lock()

    def register(self, command: str, handler: CommandHandler, description: str) -> None:
        """
        Register a command with its handler function.

        Args:
            command: Command name (lowercase, no spaces)
            handler: Callable taking the command payload
            description: Human-readable description for help text

        Raises:
            ValueError: If command already registered (double registration)
        """
        with self._lock:
            if command in self._commands:
                raise ValueError(f"Command '{command}' already registered")

            self._commands[command] = handler
            self._descriptions[command] = description

    def execute(self, command: str, command_data: Optional[Dict[str, Any]] = None) -> Any:
        """
        Execute a registered command and return the handler's result.

        Raises:
            CommandNotAvailableError: If command not registered
        """
        handler = self._commands.get(command)
        if handler is None:
            raise CommandNotAvailableError(
                f"Command '{command}' not available. "
                f"Available commands: {', '.join(sorted(self.available_commands))}"
            )
        return handler(command_data or {})

    def is_available(self, command: str) -> bool:
        return command in self._commands

    @property
    def available_commands(self) -> Set[str]:
        """Snapshot of registered command names."""
        return set(self._commands.keys())

    def get_help(self) -> Dict[str, str]:
        """Snapshot of command → description."""
        return dict(self._descriptions)

    def count(self) -> int:
        return len(self._commands)
