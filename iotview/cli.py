#!/usr/bin/env python3
"""
iotview command line

Commands:
- watch --device ID     open a device view, then run the refresh countdown
                        (smart refresh: freshness token first, logs only on change)
- chart --device ID     print chart data for a date range as JSON
                        (--from/--to default to today, --keys default to every key seen)

Config: --config YAML, IOTVIEW_* environment (.env honoured), then CLI flags.
"""

import argparse
import asyncio
import json
import logging
from pathlib import Path
from typing import List, Optional

from .charts.plot_data import chart_payload
from .config import ViewConfig, load_config
from .errors import IotViewError
from .live.refresh import RefreshOutcome
from .session import BrowserSession, variables_for_keys

logger = logging.getLogger("iotview.cli")


async def watch_device(config: ViewConfig, device_id: str, once: bool = False) -> None:
    session = BrowserSession(config)
    view = session.device_view(device_id)
    try:
        result = await view.open()
        if result.outcome == RefreshOutcome.FAILED:
            raise IotViewError(f"initial load failed: {result.error}")
        logger.info(f"device {device_id}: {len(view.buffer)} records today")

        if once:
            result = await view.scheduler.trigger_now()
            print(json.dumps({"outcome": result.outcome.value, "added": result.added}))
            return

        await view.start()
    finally:
        session.close()


async def print_chart(config: ViewConfig, device_id: str, date_from: Optional[str],
                      date_to: Optional[str], keys: Optional[List[str]]) -> None:
    session = BrowserSession(config)
    view = session.device_view(device_id)
    try:
        await view.open()
        tab = view.open_charts()
        if date_from or date_to:
            await tab.set_dates(date_from or date_to, date_to or date_from)

        variables = variables_for_keys(view.catalog, keys) if keys else view.catalog.filter()
        if not variables:
            raise IotViewError(f"device {device_id} has no variables to chart")
        await tab.collection.add_chart(variables)
        print(json.dumps([chart_payload(chart) for chart in tab.collection], indent=2))
    finally:
        session.close()


def main():
    parser = argparse.ArgumentParser(description="iotview device charts")
    parser.add_argument("--config", "-c", type=Path, default=Path("iotview.yml"),
                        help="YAML configuration file (default: iotview.yml)")
    parser.add_argument("--api-base", dest="api_base",
                        help="IoT API base URL (e.g., https://iot.example.com/api)")
    parser.add_argument("--interval", type=int,
                        help="seconds between refresh cycles")
    parser.add_argument("--log-level",
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"], help="logging level")
    subparsers = parser.add_subparsers(dest="command", required=True)

    watch = subparsers.add_parser("watch", help="follow a device's live data")
    watch.add_argument("--device", required=True, help="device id")
    watch.add_argument("--once", action="store_true",
                       help="run a single refresh cycle after the initial load and exit")

    chart = subparsers.add_parser("chart", help="print chart data as JSON")
    chart.add_argument("--device", required=True, help="device id")
    chart.add_argument("--from", dest="date_from", help="first day (YYYY-MM-DD)")
    chart.add_argument("--to", dest="date_to", help="last day (YYYY-MM-DD)")
    chart.add_argument("--keys", help="comma separated variable keys")
    args = parser.parse_args()

    config = load_config(args.config, args)

    logging.basicConfig(level=getattr(logging, config.log_level))
    logger.info(f"iotview starting with config: api={config.api_base}, interval={config.refresh_interval}s")

    try:
        if args.command == "watch":
            asyncio.run(watch_device(config, args.device, once=args.once))
        else:
            keys = [k.strip() for k in args.keys.split(",") if k.strip()] if args.keys else None
            asyncio.run(print_chart(config, args.device, args.date_from, args.date_to, keys))
    except IotViewError as e:
        logger.error(str(e))
        raise SystemExit(1)
    except KeyboardInterrupt:
        print("\nInterrupted. Bye!")


if __name__ == "__main__":
    main()
