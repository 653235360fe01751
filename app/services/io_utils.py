"""
Utilitaires IO JSON (rapides) basés sur orjson.
- read_json(Path, default)  → Any (default si fichier manquant)
- write_json(Path, data)    → écriture atomique (fichier temporaire + os.replace)
- remove_path(Path)         → supprime un fichier ou une arborescence

Attention:
- orjson renvoie/attend des bytes; on lit/écrit en mode binaire.
- Les clés non-str ne sont pas acceptées par orjson (OPT_NON_STR_KEYS activé par sécurité).
"""
import os
import shutil
from pathlib import Path
from typing import Any

import orjson as json


def read_json(path: Path, default: Any = None) -> Any:
    """Lit un fichier JSON (ou `default` s'il n'existe pas)."""
    if not path.exists():
        return default
    with path.open("rb") as f:
        return json.loads(f.read())


def write_json(path: Path, data: Any) -> None:
    """Écrit un fichier JSON sans jamais laisser un fichier à moitié écrit."""
    path.parent.mkdir(parents=True, exist_ok=True)
    tmp = path.with_name(path.name + ".tmp")
    with tmp.open("wb") as f:
        f.write(json.dumps(data, option=json.OPT_NON_STR_KEYS))
    os.replace(tmp, path)


def remove_path(path: Path) -> bool:
    """Supprime un fichier ou un dossier complet. Retourne True si quelque chose a été retiré."""
    if path.is_dir():
        shutil.rmtree(path, ignore_errors=True)
        return True
    if path.exists():
        path.unlink()
        return True
    return False
