import random
import string

# Q, X, Y, Z are too hard to find terms for
DEFAULT_ALPHABET = 'ABCDEFGHIJKLMNOPRSTUVW'


def draw_letter(alphabet: str = DEFAULT_ALPHABET, rng=random) -> str:
    """Pick one letter uniformly at random."""
    alphabet = ''.join(ch for ch in alphabet.upper() if ch in string.ascii_uppercase)
    if not alphabet:
        raise ValueError('alphabet must contain at least one letter')
    return rng.choice(alphabet)
