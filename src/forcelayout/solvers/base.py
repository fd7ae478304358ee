class ForceSolver:
    """
    Interface for force contributions.

    solve() reads positions and masses from the physics body and ADDS its
    contribution into body.forces. The engine zeroes the accumulators once per
    tick before the first solver runs.
    """

    def __init__(self, body, options):
        self.body = body
        self.set_options(options)

    # UPDATE PARAMETERS
    def set_options(self, options):
        """Store the solver's parameter section (a config dataclass)."""
        self.options = options

    # ACCUMULATE FORCES
    def solve(self):
        raise NotImplementedError()
