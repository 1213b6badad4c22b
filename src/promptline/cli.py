"""CLI entry point for promptline. Uses Click for argument parsing."""

from __future__ import annotations

import asyncio
import logging

import click

from promptline.components import PromptInput
from promptline.config import PromptInputOptions, load_options
from promptline.controller import TextValue
from promptline.keys import KeyEvent
from promptline.terminal import ProcessTerminal, Terminal

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

_ALT_SCREEN_ENTER = "\x1b[?1049h"
_ALT_SCREEN_EXIT = "\x1b[?1049l"
_HOME = "\x1b[H"
_CLEAR_TO_EOL = "\x1b[K"
_CLEAR_BELOW = "\x1b[J"

HEADER = "promptline  Enter submits | Shift+Enter or Alt+Enter adds a line | Ctrl+C quits"


def _dim(text: str) -> str:
    return f"\x1b[2m{text}\x1b[22m"


class PromptSession:
    """Runs one :class:`PromptInput` full-screen until Ctrl+C.

    Submitted prompts are listed above the input, newest last.
    """

    def __init__(self, terminal: Terminal, options: PromptInputOptions) -> None:
        self.terminal = terminal
        self.submitted: list[str] = []
        self.input = PromptInput(options)
        self.input.on_submit = self._on_submit
        self.input.on_key_intercept = self._on_key_intercept
        self.input.on_redraw = self.redraw
        self._done = asyncio.Event()

    async def run(self) -> list[str]:
        self.terminal.write(_ALT_SCREEN_ENTER)
        self.terminal.hide_cursor()
        self.terminal.start(self._on_input, self._on_resize)
        try:
            self.redraw()
            await self._done.wait()
        finally:
            self.input.dispose()
            self.terminal.stop()
            self.terminal.show_cursor()
            self.terminal.write(_ALT_SCREEN_EXIT)
        return self.submitted

    def redraw(self) -> None:
        width = max(1, self.terminal.columns)
        input_lines = self.input.render(width)

        room = max(0, self.terminal.rows - len(input_lines) - 2)
        history: list[str] = []
        for prompt in self.submitted:
            for i, line in enumerate(prompt.split("\n")):
                history.append(("> " if i == 0 else "  ") + line)
        history = [line[:width] for line in history[-room:]] if room else []

        above = [_dim(HEADER[:width]), *history, ""]
        self.input.origin = (0, len(above))

        body = "\r\n".join(line + _CLEAR_TO_EOL for line in above + input_lines)
        self.terminal.write(_HOME + body + _CLEAR_BELOW)

    def _on_input(self, data: str) -> None:
        self.input.handle_input(data)
        self.redraw()

    def _on_resize(self) -> None:
        logger.debug("resized to %dx%d", self.terminal.columns, self.terminal.rows)
        self.input.invalidate()
        self.redraw()

    def _on_key_intercept(self, key: KeyEvent) -> bool:
        if key.ctrl and key.name == "c" and not key.meta and not key.option:
            logger.info("exit requested")
            self._done.set()
            return True
        return False

    def _on_submit(self) -> None:
        text = self.input.text
        if not text.strip():
            return
        logger.info("submitted prompt of %d chars", len(text))
        self.submitted.append(text)
        self.input.set_value(TextValue())


def _configure_logging(log_file: str | None, log_level: str) -> None:
    # stderr is unusable while the terminal is in raw mode
    if log_file:
        logging.basicConfig(
            filename=log_file,
            level=getattr(logging, log_level.upper()),
            format=LOG_FORMAT,
        )
    else:
        logging.basicConfig(handlers=[logging.NullHandler()])


async def _run_session(options: PromptInputOptions, mouse: bool) -> list[str]:
    session = PromptSession(ProcessTerminal(mouse=mouse), options)
    return await session.run()


@click.command()
@click.option("--placeholder", default=None, help="Text shown while the input is empty")
@click.option("--min-height", type=int, default=None, help="Minimum input height in lines")
@click.option("--max-height", type=int, default=None, help="Maximum input height in lines")
@click.option("--no-blink", is_flag=True, default=False, help="Keep the caret steady")
@click.option("--no-mouse", is_flag=True, default=False, help="Do not capture mouse clicks")
@click.option(
    "--config",
    "config_path",
    type=click.Path(dir_okay=False),
    default=None,
    help="Settings file (default: ~/.promptline/settings.json)",
)
@click.option("--log-file", type=click.Path(dir_okay=False), default=None, help="Write logs here")
@click.option(
    "--log-level",
    type=click.Choice(["debug", "info", "warning", "error"]),
    default="info",
    help="Log level for --log-file",
)
def main(placeholder, min_height, max_height, no_blink, no_mouse, config_path, log_file, log_level):
    """Edit and submit multi-line prompts in the terminal."""
    _configure_logging(log_file, log_level)

    options = load_options(
        config_path,
        placeholder=placeholder,
        min_height=min_height,
        max_height=max_height,
        should_blink_cursor=False if no_blink else None,
    )
    logger.debug("options: %s", options)

    submitted = asyncio.run(_run_session(options, mouse=not no_mouse))
    for prompt in submitted:
        click.echo(prompt)


if __name__ == "__main__":
    main()
