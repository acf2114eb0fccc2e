"""The on/off switch shown in the indicator's menu."""

import logging
from collections.abc import Callable

logger = logging.getLogger(__name__)

ToggledHandler = Callable[["SwitchMenuItem", bool], None]


class SwitchMenuItem:
    """Menu item with a label, a toggle state and a sensitivity flag.

    Listeners registered with :meth:`connect` receive ``(item, state)``
    whenever the state changes, whether the user flipped the switch or code
    called :meth:`set_toggle_state` (as with ``Gtk.Switch.set_active``).
    *on_change* is called after any visible change so the host can redraw.
    """

    def __init__(
        self,
        label: str,
        state: bool = False,
        on_change: Callable[[], None] | None = None,
    ):
        self._label = label
        self._state = state
        self._sensitive = True
        self._on_change = on_change
        self._handlers: dict[int, ToggledHandler] = {}
        self._next_handler_id = 1

    @property
    def label(self) -> str:
        return self._label

    @property
    def state(self) -> bool:
        return self._state

    @property
    def sensitive(self) -> bool:
        return self._sensitive

    @property
    def handler_count(self) -> int:
        return len(self._handlers)

    def connect(self, handler: ToggledHandler) -> int:
        """Register a ``toggled`` listener and return its id."""
        handler_id = self._next_handler_id
        self._next_handler_id += 1
        self._handlers[handler_id] = handler
        return handler_id

    def disconnect(self, handler_id: int) -> None:
        self._handlers.pop(handler_id, None)

    def set_label(self, text: str) -> None:
        if text != self._label:
            self._label = text
            self._changed()

    def set_sensitive(self, sensitive: bool) -> None:
        if sensitive != self._sensitive:
            self._sensitive = sensitive
            self._changed()

    def set_toggle_state(self, state: bool) -> None:
        """Set the state programmatically; listeners fire only on change."""
        if state == self._state:
            return
        self._state = state
        self._changed()
        self._emit_toggled()

    def activate(self, state: bool | None = None) -> bool:
        """User interaction: flip the switch, or force it to *state*.

        Returns False without doing anything while the item is insensitive.
        Listeners always fire, even when *state* equals the current state.
        """
        if not self._sensitive:
            return False
        self._state = (not self._state) if state is None else state
        self._changed()
        self._emit_toggled()
        return True

    def _emit_toggled(self) -> None:
        for handler in list(self._handlers.values()):
            handler(self, self._state)

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change()
