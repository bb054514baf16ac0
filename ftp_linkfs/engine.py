"""
Drivers that run an operation plan against a transport.

An operation is written once as a generator ("plan") that yields ``Call``
objects naming a transport method. ``run_plan`` executes each call on a
blocking transport, ``run_plan_async`` awaits it on an async transport; the
result (or the raised exception) is sent back into the plan. Both drivers
therefore share every decision the plan makes.

If a driver is interrupted by something other than an ``Exception``
(task cancellation, KeyboardInterrupt) the transport is discarded, since
its control channel may still have a reply in flight.
"""

import inspect
import logging
from collections.abc import Generator
from dataclasses import dataclass
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Call:
    method: str
    args: tuple = ()


Plan = Generator[Call, Any, Any]


def call(method: str, *args) -> Call:
    return Call(method, args)


def run_plan(plan: Plan, client) -> Any:
    """Run plan to completion on a blocking transport and return its result."""
    value, error = None, None
    try:
        while True:
            try:
                step = plan.send(value) if error is None else plan.throw(error)
            except StopIteration as stop:
                return stop.value

            value, error = None, None
            try:
                value = getattr(client, step.method)(*step.args)
            except Exception as exc:
                error = exc
    except Exception:
        raise
    except BaseException:
        logger.debug("Exchange interrupted, discarding connection")
        client.discard()
        raise
    finally:
        plan.close()


async def run_plan_async(plan: Plan, client) -> Any:
    """Run plan to completion on an async transport and return its result."""
    value, error = None, None
    try:
        while True:
            try:
                step = plan.send(value) if error is None else plan.throw(error)
            except StopIteration as stop:
                return stop.value

            value, error = None, None
            try:
                value = getattr(client, step.method)(*step.args)
                if inspect.isawaitable(value):
                    value = await value
            except Exception as exc:
                error = exc
    except Exception:
        raise
    except BaseException:
        logger.debug("Exchange interrupted, discarding connection")
        client.discard()
        raise
    finally:
        plan.close()
