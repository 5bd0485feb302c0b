"""Exception taxonomy for the table engine."""


class HoldemError(Exception):
    pass


class ActionRejected(HoldemError, ValueError):
    """An action that is out of turn, from a player who cannot act, or of illegal size."""


class DeckExhausted(HoldemError, ValueError):
    """The card source ran out mid-deal; fatal to the current hand."""
