"""
Auto-tune session: discrete, cancellable gain reassignment.

Sequence:
  begin:  other auto loops are suspended, only the tuned loop stays on
  (wait): the host decides how long; nothing here blocks
  commit: tuned gains are written to the loop's PID, loops resume
  cancel: loops resume, gains untouched
"""

from enum import Enum

from dieselsim.core.plant_state import ControlLoop


# Gains committed at the end of a tuning run, per loop: (kp, ki, kd)
TUNED_GAINS = {
    ControlLoop.TEMPERATURE: (2.5, 0.12, 0.6),
    ControlLoop.POWER: (5.5, 0.25, 1.2),
    ControlLoop.EFFICIENCY: (3.5, 0.18, 0.9),
}


class TunePhase(str, Enum):
    WAITING = "waiting"
    COMMITTED = "committed"
    CANCELLED = "cancelled"


class AutoTuneSession:
    """Bookkeeping for one tuning run; the orchestrator applies its effects."""

    def __init__(self, loop: ControlLoop, previous_auto_enabled: dict[ControlLoop, bool]):
        self.loop = loop
        self.previous_auto_enabled = dict(previous_auto_enabled)
        self.gains = TUNED_GAINS[loop]
        self.phase = TunePhase.WAITING

    @property
    def is_active(self) -> bool:
        return self.phase == TunePhase.WAITING

    def suspended_selection(self) -> dict[ControlLoop, bool]:
        """Auto flags in force while tuning: only the tuned loop enabled."""
        return {loop: loop == self.loop for loop in ControlLoop}

    def commit(self) -> tuple[float, float, float] | None:
        """Close the session; returns the gains to apply, or None if already closed."""
        if not self.is_active:
            return None
        self.phase = TunePhase.COMMITTED
        return self.gains

    def cancel(self) -> bool:
        if not self.is_active:
            return False
        self.phase = TunePhase.CANCELLED
        return True

    def get_state(self) -> dict:
        kp, ki, kd = self.gains
        return {
            "loop": self.loop.value,
            "phase": self.phase.value,
            "gains": {"kp": kp, "ki": ki, "kd": kd},
        }
