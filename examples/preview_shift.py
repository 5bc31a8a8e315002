#!/usr/bin/env python
"""Fetch the current shift's work items and print them as a table"""
import asyncio
from datetime import datetime, timezone

from shift_report.config import load_config
from shift_report.models import OutputMode
from shift_report.report import ShiftReport
from shift_report.shifts import SHIFTS


def current_shift(now: datetime) -> str:
    for name, window in SHIFTS.items():
        if window.contains(now.time()):
            return name
    return "night"


async def main():
    config = load_config()
    now = datetime.now(timezone.utc)
    shift = current_shift(now)

    print(f"🔗 Organization: {config.server_url}")
    print(f"📁 Project: {config.project}")
    print(f"🕒 Shift: {shift}\n")

    outcome = await ShiftReport(config).run(shift, OutputMode.CONSOLE, now=now)
    print(outcome.output.content)

    if outcome.degraded:
        print("\n⚠️  Azure DevOps returned no usable data, see the log above")


if __name__ == '__main__':
    asyncio.run(main())
