"""Terminal-backed trust bridge: host verification and credential prompts.

Every prompt reads from and writes to the controlling terminal handed
in at construction time, never to stdin/stdout, so prompting keeps
working while stdin is consumed as a batch source and stdout carries
results.  Prompts are rendered by questionary on top of prompt_toolkit
input/output objects bound to that terminal.
"""

from __future__ import annotations

from typing import Any, TextIO

from cyphersh.core.models import (
    AuthChallenge,
    ConnectionConfig,
    HostVerificationReason,
    TrustDecision,
    UnverifiedHost,
)
from cyphersh.exceptions import EnvironmentError

DEFAULT_USERNAME: str = "neo4j"

_MISMATCH_WARNING: str = """\
@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@
@    WARNING: REMOTE HOST IDENTIFICATION HAS CHANGED!                     @
@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@@
IT IS POSSIBLE THAT SOMEONE IS DOING SOMETHING NASTY!
Someone could be eavesdropping on you right now (man-in-the-middle attack)!
It is also possible that the host certificate has just been changed.
"""


def _import_questionary() -> Any:
    """Import questionary lazily for terminal prompts."""
    try:
        import questionary
    except ModuleNotFoundError as exc:
        raise EnvironmentError(
            "questionary is not installed. Install with: pip install questionary",
        ) from exc
    return questionary


def _terminal_io(tty: TextIO) -> dict[str, Any]:
    """Build prompt_toolkit input/output objects bound to *tty*."""
    try:
        from prompt_toolkit.input import create_input
        from prompt_toolkit.output import create_output
    except ModuleNotFoundError as exc:
        raise EnvironmentError(
            "prompt_toolkit is not installed. Install with: pip install prompt_toolkit",
        ) from exc
    return {"input": create_input(stdin=tty), "output": create_output(stdout=tty)}


class TerminalTrustBridge:
    """:class:`~cyphersh.core.protocols.TrustBridge` answering on the terminal.

    Parameters
    ----------
    tty:
        Open handle on the controlling terminal.
    config:
        Connection configuration updated in place with fresh credentials.
    """

    def __init__(self, tty: TextIO, config: ConnectionConfig) -> None:
        self._tty: TextIO = tty
        self._config: ConnectionConfig = config

    def _write(self, text: str) -> None:
        self._tty.write(text)
        self._tty.flush()

    # ------------------------------------------------------------------
    # Host verification
    # ------------------------------------------------------------------

    def resolve_unknown_host(self, host: UnverifiedHost) -> TrustDecision:
        """Ask whether to trust *host*; cancelling the prompt rejects it."""
        questionary = _import_questionary()

        if host.reason is HostVerificationReason.MISMATCH:
            self._write(_MISMATCH_WARNING)
            self._write(
                f"The TLS certificate fingerprint for '{host.host}' does not match "
                f"the known hosts entry.\nIt is now {host.fingerprint}.\n",
            )
        else:
            self._write(
                f"The authenticity of host '{host.host}' could not be established.\n"
                f"TLS certificate fingerprint is {host.fingerprint}.\n",
            )

        answer = questionary.select(
            "Would you like to trust this host?",
            choices=[
                questionary.Choice(title="no", value=TrustDecision.REJECT),
                questionary.Choice(title="yes (remember this host)", value=TrustDecision.TRUST),
                questionary.Choice(title="once", value=TrustDecision.ACCEPT_ONCE),
            ],
            **_terminal_io(self._tty),
        ).ask()
        if answer is None:
            return TrustDecision.REJECT
        return answer

    # ------------------------------------------------------------------
    # Credentials
    # ------------------------------------------------------------------

    def prompt_password(self) -> bool:
        """Ask for the password before the first connection attempt."""
        questionary = _import_questionary()
        username = self._config.username or DEFAULT_USERNAME
        password = questionary.password(
            f"Password for {username}:",
            **_terminal_io(self._tty),
        ).ask()
        if password is None:
            return False
        self._config.username = username
        self._config.password = password
        return True

    def reattempt_auth(self, challenge: AuthChallenge) -> bool:
        """Collect new credentials after the server rejected the current ones.

        Returns ``False`` (abort) when the user cancels or enters an
        empty password.
        """
        questionary = _import_questionary()
        self._write(f"Authentication failed for {challenge.host}: {challenge.message}\n")

        username = questionary.text(
            "Username:",
            default=challenge.username or DEFAULT_USERNAME,
            **_terminal_io(self._tty),
        ).ask()
        if not username:
            return False
        password = questionary.password("Password:", **_terminal_io(self._tty)).ask()
        if not password:
            return False

        self._config.username = username
        self._config.password = password
        return True
