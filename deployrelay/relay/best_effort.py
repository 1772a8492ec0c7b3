"""Best-effort execution of secondary side effects.

A best-effort operation is attempted once; its failure is logged and never
propagated, so it cannot mask the error that prompted it.  Cancellation is
not swallowed.
"""

from __future__ import annotations

import typing as typ

if typ.TYPE_CHECKING:
    import collections.abc as cabc


async def best_effort(
    operation: cabc.Awaitable[object],
    *,
    description: str,
    on_error: cabc.Callable[[str, Exception], None],
) -> bool:
    """Await ``operation`` once, reporting and discarding any failure.

    Parameters
    ----------
    operation
        Awaitable performing the side effect.
    description
        Short label passed to ``on_error``.
    on_error
        Callback receiving the label and the discarded exception.

    Returns
    -------
    bool
        ``True`` when the operation completed, ``False`` when it failed.

    """
    try:
        await operation
    except Exception as exc:  # noqa: BLE001 - failures here must never propagate
        on_error(description, exc)
        return False
    return True
