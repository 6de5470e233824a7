from enum import Enum
from typing import Sequence


class PlanAction(str, Enum):
    CREATE  = "create"
    UPDATE  = "update"
    DELETE  = "delete"
    REPLACE = "replace"
    READ    = "read"
    NO_OP   = "no-op"

    @classmethod
    def from_actions(cls, actions: Sequence[str]) -> "PlanAction":
        """Collapse a Terraform ``change.actions`` list into a single action."""
        if len(actions) == 2 and "delete" in actions and "create" in actions:
            return cls.REPLACE
        first = actions[0] if actions else None
        for action in (cls.CREATE, cls.UPDATE, cls.DELETE, cls.READ):
            if first == action.value:
                return action
        return cls.NO_OP


# Placeholder written into attributes whose value Terraform computes at apply time
UNKNOWN_VALUE = "(known after apply)"
