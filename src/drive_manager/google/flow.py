"""Interactive OAuth authorization-code flow.

Runs the callback listener, sends the user to the consent page, waits for
the redirect, and exchanges the code for a token:

    IDLE -> AWAITING_REDIRECT -> CODE_RECEIVED -> EXCHANGED
                  |                    |
                  +------> FAILED <----+
"""

from __future__ import annotations

import asyncio
import enum
import logging
import threading
import webbrowser
from collections.abc import Callable
from typing import Any

from drive_manager.config import CALLBACK_PATH, DEFAULT_CALLBACK_HOST, DEFAULT_CALLBACK_PORT
from drive_manager.google.callback import CallbackListener
from drive_manager.google.state import generate_state

logger = logging.getLogger(__name__)


class FlowState(enum.Enum):
    IDLE = "idle"
    AWAITING_REDIRECT = "awaiting_redirect"
    CODE_RECEIVED = "code_received"
    EXCHANGED = "exchanged"
    FAILED = "failed"


def launch_browser(url: str) -> bool:
    """Try to open ``url`` in the user's browser.

    Returns:
        True if a browser was launched.
    """
    try:
        opened = webbrowser.open(url)
    except webbrowser.Error as e:
        logger.warning(f"Error opening URL in browser: {e}")
        return False

    if not opened:
        logger.warning("No browser available to open the authorization URL")
    return opened


class AuthorizationFlow:
    """Coordinates one authorization attempt.

    Args:
        authorization_url: Called with (state, redirect_uri); returns the
            consent page URL.
        exchange: Called with the authorization code; returns the token.
        host: Callback listener host.
        port: Callback listener port.
        path: Callback path.
        timeout: Seconds to wait for the redirect. None or 0 waits forever.
        browser: Browser launcher, best-effort, run on a background thread.
            None only prints the URL.
        echo: Prints user-facing instructions.
    """

    def __init__(
        self,
        authorization_url: Callable[[str, str], str],
        exchange: Callable[[str], dict[str, Any]],
        host: str = DEFAULT_CALLBACK_HOST,
        port: int = DEFAULT_CALLBACK_PORT,
        path: str = CALLBACK_PATH,
        timeout: float | None = None,
        browser: Callable[[str], bool] | None = launch_browser,
        echo: Callable[[str], None] = print,
    ):
        self._authorization_url = authorization_url
        self._exchange = exchange
        self.host = host
        self.port = port
        self.path = path
        self.timeout = timeout
        self._browser = browser
        self._echo = echo
        self.state = FlowState.IDLE

    def run(self) -> dict[str, Any]:
        """Run the flow to completion.

        Returns:
            Token returned by the exchange.

        Raises:
            AuthorizationError: On listener, timeout, or exchange failure.
        """
        if self.state is not FlowState.IDLE:
            raise RuntimeError(f"Authorization flow already {self.state.value}")

        try:
            code = asyncio.run(self._wait_for_code())
            self.state = FlowState.CODE_RECEIVED
            token = self._exchange(code)
        except BaseException:
            self.state = FlowState.FAILED
            raise

        self.state = FlowState.EXCHANGED
        return token

    async def _wait_for_code(self) -> str:
        oauth_state = generate_state()

        async with CallbackListener(
            oauth_state, host=self.host, port=self.port, path=self.path
        ) as listener:
            self.state = FlowState.AWAITING_REDIRECT
            url = self._authorization_url(oauth_state, listener.redirect_uri)

            self._echo(f"Go to the following link in your browser to authorize access:\n{url}\n")
            if self._browser is not None:
                # Console browsers can block until they exit; the listener
                # must keep serving meanwhile
                threading.Thread(target=self._browser, args=(url,), daemon=True).start()

            return await listener.wait_for_code(self.timeout)
