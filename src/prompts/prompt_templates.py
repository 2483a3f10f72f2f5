"""Spoken reply construction for every dialog outcome."""

from typing import Optional

from src.scheduling.intervals import interval_to_human
from src.schemas.intent_schema import IntentTask, TaskKind
from src.schemas.provider_schema import Provider, SelectedDateTime, TimeSlotDay
from src.schemas.workflow_schema import ExecutionResult
from src.tools.providers import category_label, format_providers_for_speech

GENERIC_ERROR_MESSAGE = "Sorry, something went wrong while handling your request. Please try again."
CONVERSATION_FALLBACK = "I'm here to help you find and book appointments. What can I do for you?"
NOTHING_TO_CONFIRM_MESSAGE = "There is nothing to confirm right now."
NOTHING_TO_CANCEL_MESSAGE = "There is nothing to cancel right now. What can I do for you?"
CANCELLED_MESSAGE = "No problem, I've cancelled that. Can I help you with anything else?"

SLOT_DAYS_SPOKEN = 3
SLOTS_PER_DAY_SPOKEN = 3

SERVICE_NAMES = {
    "tandarts": "dentist",
    "dentist": "dentist",
    "huisarts": "GP",
    "event": "event",
}


def service_name(category: Optional[str]) -> str:
    return SERVICE_NAMES.get((category or "").lower(), category or "service")


def build_providers_message(providers: list[Provider], category: str) -> str:
    return format_providers_for_speech(providers, category)


def build_no_providers_message(category: str, query: Optional[str] = None) -> str:
    where = f" matching \"{query}\"" if query else ""
    return (
        f"I couldn't find any {category_label(category)}s{where}. "
        "Could you tell me a bit more, for example a different city or type of provider?"
    )


def build_slots_message(provider: Provider, days: list[TimeSlotDay]) -> str:
    """Offer the first few open times after a provider was picked."""
    if not days:
        return f"You picked {provider.name}, but they have no open times this week."
    offers = [
        f"{day.date} at {', '.join(day.slots[:SLOTS_PER_DAY_SPOKEN])}"
        for day in days[:SLOT_DAYS_SPOKEN]
    ]
    return (
        f"Good choice, {provider.name}. Available times: {'; '.join(offers)}. "
        "Which day and time suit you? You can also say \"the first one\"."
    )


def build_provider_not_found_message(providers: list[Provider]) -> str:
    names = ", ".join(f"{i}. {p.name}" for i, p in enumerate(providers, start=1))
    return (
        f"I didn't catch which provider you meant. The options are: {names}. "
        "Say a number, a name, or \"the best\"."
    )


def build_search_first_message() -> str:
    return "Let's first find a provider. For example, say \"find me a dentist\"."


def build_provider_already_selected_message(provider: Provider) -> str:
    return (
        f"You already picked {provider.name}. Choose a time, or say \"cancel\" "
        "to start over."
    )


def build_select_provider_first_message() -> str:
    return "Please pick a provider from the list first."


def build_time_confirmation_prompt(
    provider: Provider, when: SelectedDateTime, interval: Optional[str] = None
) -> str:
    message = f"Shall I book {provider.name} on {when.label()}?"
    if interval:
        message += f" I'll also repeat this {interval_to_human(interval)}."
    return message + " Say yes to confirm or no to cancel."


def build_booking_success_message(
    provider: Provider, when: SelectedDateTime, result: ExecutionResult
) -> str:
    message = f"Your appointment with {provider.name} on {when.label()} is booked."
    if result.confirmation_text:
        message += f" {result.confirmation_text}"
    else:
        message += " You'll receive a confirmation by email."
    return message


def build_execution_failure_message(
    category: Optional[str], result: ExecutionResult
) -> str:
    """Failure reply that quotes the executor's error verbatim."""
    detail = result.error or result.message
    if detail:
        return (
            f"Something went wrong with your {service_name(category)} request. "
            f"Error: {detail}. Say yes to try again or no to cancel."
        )
    return "Something went wrong with your request. Say yes to try again or no to cancel."


def build_recurring_created_message(label: str, interval: str) -> str:
    return (
        f"I've created a recurring task: {label}. "
        f"It will run automatically {interval_to_human(interval)}."
    )


def build_pending_action_prompt(task: IntentTask) -> str:
    label = task.label or service_name(task.target)
    if task.recurring and task.interval:
        return (
            f"Shall I set up \"{label}\" to run {interval_to_human(task.interval)}? "
            "Say yes to confirm or no to cancel."
        )
    verb = "fill in the form for" if task.kind == TaskKind.FORM_FILL else "take care of"
    return f"Shall I {verb} \"{label}\" now? Say yes to confirm or no to cancel."


def build_action_success_message(task: IntentTask, result: ExecutionResult) -> str:
    name = task.label or service_name(task.target)
    if task.kind == TaskKind.FORM_FILL:
        message = f"The form for {name} has been filled in and sent."
    else:
        message = f"Your {name} appointment has been scheduled."
    if result.confirmation_text:
        message += f" {result.confirmation_text}"
    return message


def build_nothing_to_confirm_message(hint: Optional[str] = None) -> str:
    if hint:
        return f"{NOTHING_TO_CONFIRM_MESSAGE} {hint}"
    return NOTHING_TO_CONFIRM_MESSAGE
