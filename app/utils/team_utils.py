"""
Utils: team_utils.py
Rôle:
- Répartir des participants non assignés entre des équipes existantes.

Comportement:
- Les participants sont mélangés puis distribués en round-robin, en commençant par
  l'équipe la moins remplie (équipes quasi équilibrées).
- `seed` permet de rejouer le tirage (déterministe pour tests / fairness).
"""
import random
from typing import Dict, List, Mapping, Optional


def round_robin_assign(
    participant_ids: List[str],
    team_ids: List[str],
    current_sizes: Optional[Mapping[str, int]] = None,
    seed: Optional[int] = None,
) -> Dict[str, str]:
    """
    Args:
        participant_ids: participants à placer.
        team_ids: équipes cibles (ordre conservé à taille égale).
        current_sizes: effectif actuel de chaque équipe (0 par défaut).
        seed: graine RNG pour un tirage reproductible.

    Returns:
        Dict[str, str]: participant_id → team_id.
    """
    if not participant_ids or not team_ids:
        return {}

    rng = random.Random(seed) if seed is not None else random
    pool = participant_ids[:]
    rng.shuffle(pool)

    sizes = {tid: int((current_sizes or {}).get(tid, 0)) for tid in team_ids}
    # ordre de distribution : les équipes les moins remplies d'abord
    order = sorted(team_ids, key=lambda tid: (sizes[tid], team_ids.index(tid)))

    assignment: Dict[str, str] = {}
    for i, pid in enumerate(pool):
        assignment[pid] = order[i % len(order)]
    return assignment
