from enum import Enum
from typing import Dict, FrozenSet, List


class RequestStage(str, Enum):
    STARTED = "STARTED"
    ORDER_PENDING = "ORDER_PENDING"
    ORDER_FAILED = "ORDER_FAILED"
    ORDER_CREATED = "ORDER_CREATED"
    INVENTORY_PENDING = "INVENTORY_PENDING"
    INVENTORY_FAILED = "INVENTORY_FAILED"
    INVENTORY_RESERVED = "INVENTORY_RESERVED"
    COMPLETED = "COMPLETED"


TRANSITIONS: Dict[RequestStage, FrozenSet[RequestStage]] = {
    RequestStage.STARTED: frozenset({RequestStage.ORDER_PENDING}),
    RequestStage.ORDER_PENDING: frozenset({RequestStage.ORDER_FAILED, RequestStage.ORDER_CREATED}),
    # Order-only requests complete straight after creation
    RequestStage.ORDER_CREATED: frozenset({RequestStage.INVENTORY_PENDING, RequestStage.COMPLETED}),
    RequestStage.INVENTORY_PENDING: frozenset({
        RequestStage.INVENTORY_FAILED,
        RequestStage.INVENTORY_RESERVED,
    }),
    RequestStage.INVENTORY_RESERVED: frozenset({RequestStage.COMPLETED}),
    RequestStage.ORDER_FAILED: frozenset(),
    RequestStage.INVENTORY_FAILED: frozenset(),
    RequestStage.COMPLETED: frozenset(),
}

TERMINAL_STAGES = frozenset(stage for stage, nxt in TRANSITIONS.items() if not nxt)


class IllegalStageTransition(RuntimeError):
    pass


class RequestTrace:
    """Stage history of one gateway request"""

    def __init__(self, request_kind: str):
        self.request_kind = request_kind
        self.stage = RequestStage.STARTED
        self.history: List[RequestStage] = [RequestStage.STARTED]

    def advance(self, stage: RequestStage) -> RequestStage:
        if stage not in TRANSITIONS[self.stage]:
            raise IllegalStageTransition(f"{self.stage.value} -> {stage.value}")
        self.stage = stage
        self.history.append(stage)
        return stage

    @property
    def finished(self) -> bool:
        return self.stage in TERMINAL_STAGES
