"""Form state: value store and the Form that wires it to validation."""

from formstate.form.form import Form, FormView
from formstate.form.store import FormSnapshot, FormState, FormStore

__all__ = ["Form", "FormSnapshot", "FormState", "FormStore", "FormView"]
