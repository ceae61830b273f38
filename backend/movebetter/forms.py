"""
Form controller: holds field values, validates on submit and runs one action.

    form = Form(PatientCreate, store.create, formatters={"cpf": format_cpf})
    form.open()
    form.set("name", "Ana"); form.set("cpf", "12345678901")
    result = form.submit()   # closes and resets only when result.success

Invalid input never reaches the action. A second submit while one is in
flight is rejected.
"""
import logging
import threading
from typing import Any, Callable, Dict, Optional, Type

from pydantic import BaseModel, ValidationError

logger = logging.getLogger(__name__)


class Form:
    def __init__(
        self,
        schema: Type[BaseModel],
        action: Callable[[dict], Any],
        initial: Optional[dict] = None,
        formatters: Optional[Dict[str, Callable[[Any], Any]]] = None,
        partial: bool = False,
    ):
        self.schema = schema
        self.action = action
        self.initial = dict(initial or {})
        self.formatters = formatters or {}
        self.partial = partial
        self.values: Dict[str, Any] = dict(self.initial)
        self.errors: Dict[str, str] = {}
        self.is_open = False
        self.is_submitting = False
        self.last_result = None
        self._lock = threading.Lock()

    def open(self, values: Optional[dict] = None) -> None:
        if values:
            self.values.update(values)
        self.is_open = True

    def close(self) -> None:
        self.is_open = False

    def reset(self) -> None:
        self.values = dict(self.initial)
        self.errors = {}

    def set(self, field: str, value: Any) -> Any:
        formatter = self.formatters.get(field)
        if formatter is not None and value is not None:
            value = formatter(value)
        self.values[field] = value
        self.errors.pop(field, None)
        return value

    def validate(self) -> Optional[BaseModel]:
        # Blank inputs mean "not filled in"
        cleaned = {k: (None if isinstance(v, str) and not v.strip() else v) for k, v in self.values.items()}
        if self.partial:
            cleaned = {k: v for k, v in cleaned.items() if v is not None}
        try:
            model = self.schema(**cleaned)
        except ValidationError as exc:
            self.errors = {}
            for err in exc.errors():
                field = ".".join(str(part) for part in err["loc"]) or "__all__"
                self.errors.setdefault(field, err["msg"])
            return None
        self.errors = {}
        return model

    def payload(self, model: BaseModel) -> dict:
        if self.partial:
            return model.model_dump(exclude_unset=True)
        return model.model_dump(exclude_none=True)

    def submit(self):
        """Validate and run the action once; returns its result, or None when nothing ran."""
        if not self._lock.acquire(blocking=False):
            logger.debug("%s form already submitting; ignored", self.schema.__name__)
            return None
        self.is_submitting = True
        try:
            model = self.validate()
            if model is None:
                logger.debug("%s form invalid: %s", self.schema.__name__, self.errors)
                return None
            result = self.action(self.payload(model))
            self.last_result = result
            if getattr(result, "success", False):
                self.reset()
                self.close()
            return result
        finally:
            self.is_submitting = False
            self._lock.release()
