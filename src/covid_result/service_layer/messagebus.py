# pylint: disable=broad-except
"""Message bus for the test result service following Cosmic Python pattern."""

from __future__ import annotations
import logging
from typing import List, Dict, Callable, Type, Union, TYPE_CHECKING

from covid_result.domain import commands, events
from covid_result.service_layer import handlers

if TYPE_CHECKING:
    from covid_result.service_layer.unit_of_work import AbstractUnitOfWork

logger = logging.getLogger(__name__)

Message = Union[commands.Command, events.Event]


def handle(
    message: Message,
    uow: AbstractUnitOfWork,
):
    """Handle message (command or event) with the appropriate handler."""
    results = []
    queue = [message]

    while queue:
        message = queue.pop(0)

        if isinstance(message, events.Event):
            handle_event(message, queue, uow)
        elif isinstance(message, commands.Command):
            cmd_result = handle_command(message, queue, uow)
            results.append(cmd_result)
        else:
            raise Exception(f"{message} was not an Event or Command")

    return results


def handle_event(
    event: events.Event,
    queue: List[Message],
    uow: AbstractUnitOfWork,
):
    """
    Handle event by calling all registered event handlers.

    Event handlers are best-effort side effects: a failure is logged and the
    remaining handlers still run.
    """
    for handler in EVENT_HANDLERS[type(event)]:
        try:
            logger.debug(f"handling event {event} with handler {handler}")
            handler(event, uow=uow)
            queue.extend(uow.collect_new_events())
        except Exception:
            logger.exception("Exception handling event %s", event)
            continue


def handle_command(
    command: commands.Command,
    queue: List[Message],
    uow: AbstractUnitOfWork,
):
    """
    Handle command by calling the registered command handler.

    Commands carry patient identifiers, so only the command type is logged.
    """
    command_type = type(command).__name__
    logger.debug(f"handling command {command_type}")
    try:
        handler = COMMAND_HANDLERS[type(command)]
        result = handler(command, uow=uow)
        queue.extend(uow.collect_new_events())
        return result
    except (handlers.InvalidRequest, handlers.ResultNotFound):
        raise
    except Exception:
        logger.exception("Exception handling command %s", command_type)
        raise


# Event handlers - run in order, multiple handlers can respond to same event
EVENT_HANDLERS = {
    events.NegativeResultReleased: [
        handlers.record_viewed_result,
        handlers.purge_expired_viewed_results,
    ],
    events.NotificationRequested: [
        handlers.purge_expired_notification_requests,
    ],
}  # type: Dict[Type[events.Event], List[Callable]]

# Command handlers - single handler per command type
COMMAND_HANDLERS = {
    commands.RetrieveTestResult: handlers.retrieve_test_result,
    commands.RequestNotification: handlers.request_notification,
}  # type: Dict[Type[commands.Command], Callable]
