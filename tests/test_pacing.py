from __future__ import annotations

import asyncio
import time

from pacing import Pacer


def test_pacer_spaces_consecutive_dispatches() -> None:
    async def _main() -> list[float]:
        pacer = Pacer(0.05)
        stamps = []
        for _ in range(3):
            await pacer.wait()
            stamps.append(time.monotonic())
        return stamps

    stamps = asyncio.run(_main())

    gaps = [b - a for a, b in zip(stamps, stamps[1:])]
    assert all(gap >= 0.045 for gap in gaps)


def test_first_dispatch_is_not_delayed() -> None:
    async def _main() -> float:
        pacer = Pacer(5.0)
        started = time.monotonic()
        await pacer.wait()
        return time.monotonic() - started

    assert asyncio.run(_main()) < 1.0
