"""
Service: puzzles.py
Rôle :
- Évaluer une tentative brute contre un secret fixe. Fonctions pures, sans état partagé.
- Trois issues possibles : `solved`, `wrong`, `invalid_format`. Une saisie mal formée
  n'est jamais une "mauvaise réponse" et ne consomme pas de tentative.

Stratégies :
- permutation exacte (chiffres 1..N, chacun une fois)
- bulls/cows (score type Mastermind, chiffres répétés gérés)
- phrase normalisée (trim, majuscules, sans espaces ni '_', tiret demi-cadratin → '-')
- motif binaire et choix unique (Well / Network)
- contrôle multi-variables (prédicats nommés ordonnés + solution désignée)
"""
from __future__ import annotations

import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, Iterable, Optional, Sequence, Tuple

SOLVED = "solved"
WRONG = "wrong"
INVALID_FORMAT = "invalid_format"


@dataclass(frozen=True)
class Verdict:
    outcome: str
    detail: Optional[str] = None
    feedback: Dict[str, Any] = field(default_factory=dict)

    @property
    def solved(self) -> bool:
        return self.outcome == SOLVED

    @property
    def counts_attempt(self) -> bool:
        return self.outcome != INVALID_FORMAT


def _solved(**feedback: Any) -> Verdict:
    return Verdict(SOLVED, feedback=feedback)


def _wrong(detail: Optional[str] = None, **feedback: Any) -> Verdict:
    return Verdict(WRONG, detail=detail, feedback=feedback)


def _invalid(detail: str) -> Verdict:
    return Verdict(INVALID_FORMAT, detail=detail)


# ---------------------------------------------------------------------------
# Permutation
# ---------------------------------------------------------------------------
def is_permutation(raw: str, size: int) -> bool:
    expected = {str(i) for i in range(1, size + 1)}
    return len(raw) == size and set(raw) == expected


def evaluate_permutation(target: str, raw: str) -> Verdict:
    guess = (raw or "").strip()
    if not is_permutation(guess, len(target)):
        return _invalid(f"expected a permutation of 1..{len(target)}")
    return _solved() if guess == target else _wrong()


# ---------------------------------------------------------------------------
# Bulls / cows
# ---------------------------------------------------------------------------
def score_bulls_cows(secret: str, guess: str) -> Tuple[int, int]:
    """
    bulls = positions identiques ; cows = somme sur les chiffres distincts de la proposition
    de min(occurrences secret, occurrences proposition), moins bulls.
    """
    if len(secret) != len(guess):
        raise ValueError("Guess length must match the secret length.")
    bulls = sum(1 for s, g in zip(secret, guess) if s == g)
    in_secret = Counter(secret)
    in_guess = Counter(guess)
    common = sum(min(in_secret[d], count) for d, count in in_guess.items())
    return bulls, common - bulls


def evaluate_bulls_cows(secret: str, raw: str) -> Verdict:
    guess = (raw or "").strip()
    if len(guess) != len(secret) or not guess.isdigit() or not guess.isascii():
        return _invalid(f"expected exactly {len(secret)} digits")
    bulls, cows = score_bulls_cows(secret, guess)
    if bulls == len(secret):
        return _solved(bulls=bulls, cows=cows)
    return _wrong(bulls=bulls, cows=cows)


# ---------------------------------------------------------------------------
# Phrases
# ---------------------------------------------------------------------------
def normalize_phrase(text: str) -> str:
    return re.sub(r"\s+", "", (text or "").strip().upper()).replace("_", "").replace("–", "-")


def evaluate_phrase(target: str, raw: str) -> Verdict:
    guess = normalize_phrase(raw)
    if not guess:
        return _invalid("empty phrase")
    return _solved() if guess == normalize_phrase(target) else _wrong()


# ---------------------------------------------------------------------------
# Motif binaire / choix unique
# ---------------------------------------------------------------------------
def evaluate_binary_pattern(target: str, raw: str) -> Verdict:
    guess = (raw or "").strip()
    if not re.fullmatch(r"[01]{%d}" % len(target), guess):
        return _invalid(f"expected {len(target)} symbols of 1 and 0")
    return _solved() if guess == target else _wrong()


def evaluate_choice(correct: str, raw: str, options: Iterable[str]) -> Verdict:
    choice = (raw or "").strip().upper()
    if not choice or choice not in {o.upper() for o in options}:
        return _invalid("no option selected")
    return _solved() if choice == correct.upper() else _wrong()


# ---------------------------------------------------------------------------
# Contrôle multi-variables
# ---------------------------------------------------------------------------
Predicate = Tuple[str, Callable[..., bool]]


def parse_integers(raw: Any, names: Sequence[str]) -> Optional[Tuple[int, ...]]:
    """Accepte un dict {nom: valeur} ou une séquence ; None si une valeur n'est pas entière."""
    if isinstance(raw, dict):
        values = [raw.get(n, raw.get(n.lower())) for n in names]
    elif isinstance(raw, (list, tuple)):
        values = list(raw)
    else:
        values = re.split(r"[\s,;]+", str(raw or "").strip())
    if len(values) != len(names):
        return None
    parsed = []
    for value in values:
        if isinstance(value, bool):
            return None
        if isinstance(value, int):
            parsed.append(value)
            continue
        text = str(value if value is not None else "").strip()
        if not re.fullmatch(r"[+-]?\d+", text):
            return None
        parsed.append(int(text))
    return tuple(parsed)


def evaluate_constraints(
    values: Optional[Tuple[int, ...]],
    predicates: Sequence[Predicate],
    solution: Tuple[int, ...],
) -> Verdict:
    """
    Les prédicats sont évalués dans l'ordre : le premier en échec est rapporté (et lui seul).
    Tous satisfaits mais triplet différent de `solution` → `wrong` sans prédicat fautif.
    """
    if values is None:
        return _invalid("all channels require integer input")
    for name, check in predicates:
        if not check(*values):
            return _wrong(detail=name, failed=name)
    if tuple(values) != tuple(solution):
        return _wrong(detail="undesignated", failed=None)
    return _solved()


# ---------------------------------------------------------------------------
# Escalade des indices
# ---------------------------------------------------------------------------
def escalate(attempts_before: int, generic: str, specific: str, threshold: int) -> str:
    """Message vague d'abord, plus précis une fois `threshold` tentatives déjà consommées."""
    return specific if attempts_before >= threshold else generic
