import os
from pathlib import Path
from typing import Dict, List, Optional, Union

from .loader import Loader
from .pointer import SemanticPointer

ASSETS_ROOT = Path(__file__).parent / "assets"


def find_project_root(start_dir: Optional[Path] = None) -> Path:
    """Searches upwards for pyproject.toml, then .git."""
    start = (start_dir or Path.cwd()).resolve()
    for current in [start] + list(start.parents):
        if (current / "pyproject.toml").is_file() or (current / ".git").is_dir():
            return current
    return start


class Needle:
    """
    Resolves semantic pointers to message templates.

    Roots are searched in order, each contributing `needle/<lang>` (packaged
    defaults) and then `.stubloom/needle/<lang>` (project overrides); later
    entries win.
    """

    def __init__(self, roots: Optional[List[Path]] = None):
        self.default_lang = "en"
        self.roots = roots if roots is not None else [ASSETS_ROOT, find_project_root()]
        self._registry: Dict[str, Dict[str, str]] = {}
        self._loader = Loader()

    def _ensure_lang_loaded(self, lang: str) -> Dict[str, str]:
        if lang not in self._registry:
            merged: Dict[str, str] = {}
            for root in self.roots:
                merged.update(self._loader.load_directory(root / "needle" / lang))
                merged.update(
                    self._loader.load_directory(root / ".stubloom" / "needle" / lang)
                )
            self._registry[lang] = merged
        return self._registry[lang]

    def get(
        self, pointer: Union[SemanticPointer, str], lang: Optional[str] = None
    ) -> str:
        """
        Lookup order: target language, default language, then the key itself.
        """
        key = str(pointer)
        target_lang = lang or os.getenv("STUBLOOM_LANG", self.default_lang)

        value = self._ensure_lang_loaded(target_lang).get(key)
        if value is None and target_lang != self.default_lang:
            value = self._ensure_lang_loaded(self.default_lang).get(key)
        return key if value is None else value


needle = Needle()
