# hexapod_host/runners/run_sequence.py
"""
Walk the hexapod through a scripted sequence.

Usage:
    python -m hexapod_host.runners.run_sequence forward:1 left:90 rest:2
    python -m hexapod_host.runners.run_sequence --host 10.0.0.12 --port 80 tilt_forward:3

Steps are <name>:<value>. Names: forward, back, left, right, tilt_forward,
tilt_back, tilt_left, tilt_right, rest.
"""
import argparse
import asyncio
import dataclasses
import logging

from hexapod_host.core.hexapod import Hexapod
from hexapod_host.core.settings import HexapodSettings
from hexapod_host.logger.logger import HexapodLogBundle

STEPS = {
    "forward": "move_forward",
    "back": "move_back",
    "left": "turn_left",
    "right": "turn_right",
    "tilt_forward": "tilt_forward",
    "tilt_back": "tilt_back",
    "tilt_left": "tilt_left",
    "tilt_right": "tilt_right",
    "rest": "rest",
}


def parse_step(text: str) -> tuple[str, float]:
    name, _, value = text.partition(":")
    if name not in STEPS:
        raise argparse.ArgumentTypeError(f"unknown step {name!r} (choose from {', '.join(STEPS)})")
    try:
        return name, float(value or 0)
    except ValueError:
        raise argparse.ArgumentTypeError(f"bad value in {text!r}") from None


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(description="Run a hexapod motion sequence")
    p.add_argument("steps", nargs="+", type=parse_step, help="e.g. forward:1 left:90 rest:2")
    p.add_argument("--profile", default="default", help="config/hexapod_profile_<name>.yaml")
    p.add_argument("--host", help="override link.host")
    p.add_argument("--port", type=int, help="override link.port")
    p.add_argument("--no-http", action="store_true", help="do not echo packets over HTTP")
    p.add_argument("--console", action="store_true", help="also log to stderr")
    return p


async def main(argv=None) -> None:
    args = build_parser().parse_args(argv)

    settings = HexapodSettings.load(args.profile)
    link = settings.link
    if args.host:
        link = dataclasses.replace(link, host=args.host)
    if args.port:
        link = dataclasses.replace(link, port=args.port)
    if args.no_http:
        link = dataclasses.replace(link, echo_http=False)
    settings = dataclasses.replace(settings, link=link)

    log_settings = settings.logging
    if args.console:
        log_settings = dataclasses.replace(log_settings, console=True)
    bundle = HexapodLogBundle.from_settings(log_settings, name="hexapod_host")
    log = logging.getLogger("hexapod_host.runner")

    hexapod = Hexapod.from_settings(settings, recorder=bundle.events)
    hexapod.bus.subscribe("link.error", lambda d: print("[Link] error:", d))
    hexapod.bus.subscribe("link.timeout", lambda d: print("[Link] timeout:", d))

    try:
        if not await hexapod.connect():
            print(f"[Hexapod] cannot reach {link.host}:{link.port}")
            return

        for name, value in args.steps:
            log.info("queue %s %s", name, value)
            getattr(hexapod, STEPS[name])(value)

        await hexapod.wait_idle()
        print("[Hexapod] sequence complete")
    except KeyboardInterrupt:
        print("\n[Hexapod] Stopping...")
    finally:
        await hexapod.disconnect()
        bundle.close()


def cli() -> None:
    asyncio.run(main())


if __name__ == "__main__":
    cli()
