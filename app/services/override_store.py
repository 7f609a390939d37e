from collections.abc import Mapping
from typing import Dict, Iterable, Optional, Tuple, Union

from app.utils.logging_config import get_logger

OverrideValue = Union[str, bool]

BACK = "Back"
DEFAULT = "Default"


def _key(value) -> str:
    return "" if value is None else str(value)


def _to_flag(value) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if value == BACK:
        return True
    if value == DEFAULT:
        return False
    return None


class OverrideStore:
    """User-forced back/front logo choices, isolated per editing scope.

    Layout is ``scope -> product id -> placement name -> bool``. Every call
    needs a scope token: there is no shared global scope, so one editor
    session never sees the toggles of another on the same product. Callers
    clear their scope when the session ends.
    """

    def __init__(self):
        self._scopes: Dict[str, Dict[str, Dict[str, bool]]] = {}
        self.logger = get_logger(__name__)

    @staticmethod
    def _require_scope(scope) -> str:
        key = _key(scope)
        if not key:
            raise ValueError("An override scope is required")
        return key

    def set_force_back_overrides(
        self,
        product_id,
        mapping: Union[Mapping, Iterable[Tuple[str, OverrideValue]], None],
        *,
        scope: str,
    ) -> None:
        """Record overrides for a product; "Back" forces the back logo, "Default" the front"""
        scope_key = self._require_scope(scope)
        pid = _key(product_id)
        if not pid:
            return

        pairs = mapping.items() if isinstance(mapping, Mapping) else (mapping or ())
        product_map = self._scopes.setdefault(scope_key, {}).setdefault(pid, {})
        for name, value in pairs:
            flag = _to_flag(value)
            if flag is None:
                self.logger.debug(f"Ignoring override {name!r}={value!r} for product {pid}")
                continue
            product_map[_key(name)] = flag

    def get_override_for(self, product_id, name, *, scope: str) -> Optional[bool]:
        """The forced choice, or None when the placement's own flag applies"""
        scope_key = self._require_scope(scope)
        product_map = self._scopes.get(scope_key, {}).get(_key(product_id))
        if not product_map:
            return None
        return product_map.get(_key(name))

    def get_overrides(self, product_id, *, scope: str) -> Dict[str, bool]:
        scope_key = self._require_scope(scope)
        return dict(self._scopes.get(scope_key, {}).get(_key(product_id), {}))

    def clear_force_back_overrides(self, product_id, *, scope: str) -> None:
        scope_key = self._require_scope(scope)
        scope_map = self._scopes.get(scope_key)
        if scope_map is None:
            return
        scope_map.pop(_key(product_id), None)
        if not scope_map:
            self._scopes.pop(scope_key, None)

    def clear_force_back_scope(self, scope: str) -> None:
        scope_key = self._require_scope(scope)
        if self._scopes.pop(scope_key, None) is not None:
            self.logger.debug(f"Cleared override scope {scope_key}")
