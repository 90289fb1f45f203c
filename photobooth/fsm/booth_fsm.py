import logging
from pathlib import Path

import yaml
from transitions import Machine

ACTIVE_STATES = ("counting_down", "capturing", "interstitial")
CALLBACK_PREFIXES = ("on_enter_", "on_exit_")


class CaptureFSM:
    """
    Finite State Machine for a photobooth capture session.
    Loads its structure from states.yaml for easy modification.
    """

    def __init__(self, config_path=None, callbacks=None):
        """
        :param config_path: Optional path to the YAML FSM definition.
        :param callbacks: Optional dict of state entry/exit callbacks.
                          Example: {"on_enter_capturing": some_function}
        """
        self.log = logging.getLogger("CaptureFSM")
        self.config_path = config_path or Path(__file__).parent / "states.yaml"
        self.callbacks = callbacks or {}

        self.target_count = 4
        self.captured_count = 0

        with open(self.config_path, "r") as f:
            fsm_config = yaml.safe_load(f)

        for name, func in self.callbacks.items():
            if not callable(func):
                raise ValueError(f"Callback '{name}' must be callable, got {type(func)}")
            if not name.startswith(CALLBACK_PREFIXES):
                raise ValueError(f"Callback name '{name}' should start with 'on_enter_' or 'on_exit_'")

        states = [self._state_definition(s) for s in fsm_config.get("states", [])]
        known = {s["name"] for s in states}
        for name in self.callbacks:
            state = name.split("_", 2)[2]
            if state not in known:
                raise ValueError(f"Callback '{name}' refers to unknown state '{state}'")

        self.machine = Machine(
            model=self,
            states=states,
            transitions=fsm_config.get("transitions", []),
            initial=fsm_config.get("initial", "idle"),
            auto_transitions=False,
        )

    def _state_definition(self, state):
        definition = {"name": state} if isinstance(state, str) else dict(state)
        name = definition["name"]
        for prefix in CALLBACK_PREFIXES:
            func = self.callbacks.get(f"{prefix}{name}")
            if func is not None:
                key = prefix.rstrip("_")  # "on_enter" / "on_exit"
                definition[key] = list(definition.get(key, [])) + [func]
        return definition

    # -------------------- Condition Methods --------------------
    # Referenced in states.yaml as transition conditions

    def is_strip_full(self):
        """True once every photo of the strip has been taken."""
        return self.captured_count >= self.target_count

    # -------------------- Helper Methods --------------------

    def is_active(self):
        """True while a session is counting down, capturing or between shots."""
        return self.state in ACTIVE_STATES

    def reset_progress(self, target_count):
        self.target_count = target_count
        self.captured_count = 0
        self.log.debug("[FSM] %s, expecting %d photo(s)", self.state, target_count)
