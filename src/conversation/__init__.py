from src.conversation.state_machine import (
    DialogState,
    DialogStateMachine,
    DialogTrigger,
    InvalidTransitionError,
)

__all__ = [
    "DialogStateMachine",
    "DialogState",
    "DialogTrigger",
    "InvalidTransitionError",
]
