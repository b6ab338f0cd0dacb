"""Step boundaries: Playwright failures inside a named step become StepFailed."""

from __future__ import annotations

from contextlib import contextmanager
from typing import Iterator

from playwright.async_api import Error as PlaywrightError, TimeoutError as PlaywrightTimeout

from browserbridge.errors import StepFailed


@contextmanager
def step(name: str) -> Iterator[None]:
    """Turn Playwright failures inside the block into StepFailed(name, ...).

    Timeouts and other browser errors differ only by message: timeouts read
    ``"<name>: timed out: ..."``.
    """
    try:
        yield
    except StepFailed:
        raise
    except PlaywrightTimeout as e:
        raise StepFailed(name, f"timed out: {first_line(e)}") from e
    except PlaywrightError as e:
        raise StepFailed(name, first_line(e)) from e


def first_line(error: Exception) -> str:
    # Playwright messages carry a multi-line call log after the first line
    text = str(error).strip()
    return text.splitlines()[0] if text else error.__class__.__name__
