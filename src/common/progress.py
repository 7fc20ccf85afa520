"""Terminal progress bar fed by (message, fraction) reporter callbacks."""

from __future__ import annotations

from typing import Optional

from tqdm import tqdm

_SCALE = 1000


class StageProgress:
    """One tqdm bar per CLI stage, labelled ``[stage/stages] message``.

    Instances are callable so they can be handed to any component that
    takes a progress reporter.
    """

    def __init__(self, stages: int, disable: bool = False):
        self.stages = stages
        self.stage = 1
        self._disable = disable
        self._bar: Optional[tqdm] = None

    def __call__(self, message: str, fraction: float = 0.0) -> None:
        if self._bar is None:
            self._bar = tqdm(total=_SCALE, disable=self._disable, leave=False, bar_format="{desc} {bar} {percentage:3.0f}%")
        self._bar.set_description_str(f"[{self.stage}/{self.stages}] {message}")
        target = int(max(0.0, min(1.0, fraction)) * _SCALE)
        if target > self._bar.n:
            self._bar.update(target - self._bar.n)
        else:
            self._bar.refresh()

    def complete(self, message: str) -> str:
        """Close the current bar and move to the next stage; returns the summary line."""
        self.hide()
        line = f"[{self.stage}/{self.stages}] {message}"
        self.stage += 1
        return line

    def hide(self) -> None:
        if self._bar is not None:
            self._bar.close()
            self._bar = None
