class NodeNotFoundError(Exception):
    """Node ID not found in the physics body."""
    def __init__(self, message="Node ID not found in physics body."):
        super().__init__(message)


class EdgeNotFoundError(Exception):
    """Edge ID not found in the physics body."""
    def __init__(self, message="Edge ID not found in physics body."):
        super().__init__(message)


class StateTransitionError(Exception):
    """Engine operation not allowed in its current state."""
    def __init__(self, message="Invalid engine state transition attempted."):
        super().__init__(message)
