"""
Notifier — platform-aware sound and system notification side effects.

Both calls are fire-and-forget: failures are logged here and never
propagate into the engines.
"""

from __future__ import annotations

import subprocess
import sys
from typing import Protocol

from ..log import setup_logger

logger = setup_logger(__name__)


class Notifier(Protocol):

    def play_tone(self) -> None:
        ...

    def show_notification(self, title: str, body: str) -> None:
        ...


class DesktopNotifier:

    def play_tone(self) -> None:
        if sys.platform == "win32":
            ok = self._windows_tone()
        elif sys.platform == "darwin":
            ok = self._macos_tone()
        else:
            ok = self._linux_tone()
        if not ok:
            # terminal bell as the last resort
            try:
                sys.stdout.write("\a")
                sys.stdout.flush()
            except (AttributeError, OSError, ValueError) as e:
                # no usable stdout (pythonw, closed stream)
                logger.warning("Terminal bell failed: %s", e)

    def show_notification(self, title: str, body: str) -> None:
        if sys.platform == "win32":
            ok = self._windows_notify(title, body)
        elif sys.platform == "darwin":
            ok = self._macos_notify(title, body)
        else:
            ok = self._linux_notify(title, body)
        if not ok:
            logger.warning("System notification failed: %s | %s", title, body)

    # ------------------------------------------------------------------
    # Platform implementations
    # ------------------------------------------------------------------

    def _windows_tone(self) -> bool:
        return self._run(["powershell", "-Command", "[console]::beep(880, 700)"])

    def _macos_tone(self) -> bool:
        return self._run(["afplay", "/System/Library/Sounds/Glass.aiff"])

    def _linux_tone(self) -> bool:
        return self._run(["canberra-gtk-play", "--id", "complete"])

    def _windows_notify(self, title: str, body: str) -> bool:
        script = (
            "[void][Reflection.Assembly]::LoadWithPartialName('System.Windows.Forms');"
            "$n = New-Object System.Windows.Forms.NotifyIcon;"
            "$n.Icon = [System.Drawing.SystemIcons]::Information;"
            "$n.Visible = $true;"
            f"$n.ShowBalloonTip(5000, {_ps_quote(title)}, {_ps_quote(body)}, 'Info')"
        )
        return self._run(["powershell", "-Command", script])

    def _macos_notify(self, title: str, body: str) -> bool:
        script = f"display notification {_as_quote(body)} with title {_as_quote(title)}"
        return self._run(["osascript", "-e", script])

    def _linux_notify(self, title: str, body: str) -> bool:
        return self._run(["notify-send", "--app-name=Study Timer", title, body])

    def _run(self, cmd: list[str]) -> bool:
        """
        Spawn *cmd* without waiting for it. True means the tool was started,
        not that it succeeded: the engines tick on the event loop, so the
        exit status is never awaited and a tool that starts but then fails
        does not trigger the bell fallback.
        """
        try:
            subprocess.Popen(cmd, stdout=subprocess.DEVNULL, stderr=subprocess.DEVNULL)
            return True
        except (OSError, subprocess.SubprocessError) as e:
            logger.warning("%s failed: %s", cmd[0], e)
            return False


class LogNotifier:
    """Headless notifier: writes the side effects to the log only."""

    def play_tone(self) -> None:
        logger.info("Tone")

    def show_notification(self, title: str, body: str) -> None:
        logger.info("Notification: %s | %s", title, body)


def build_notifier(kind: str) -> Notifier:
    if kind == "log":
        return LogNotifier()
    return DesktopNotifier()


def _ps_quote(text: str) -> str:
    return "'" + text.replace("'", "''") + "'"


def _as_quote(text: str) -> str:
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'
