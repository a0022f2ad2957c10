"""Play side of the charads game.

``engine.RoundEngine`` runs one participant's rounds, ``countdown`` ticks it
from a background task and ``registry.SessionRegistry`` maps session codes to
engines for the HTTP and socket handlers.
"""
