"""Base form for JSON request bodies."""

from flask_wtf import FlaskForm

from arenapulse.errors import ValidationError


class ApiForm(FlaskForm):
    """A FlaskForm populated from the JSON body of the current request.

    CSRF is enforced globally by CSRFProtect through the X-CSRFToken header,
    so the per-form token is disabled.
    """

    class Meta:
        csrf = False


def validate_form(form):
    """Validate a form, raising ValidationError with the first field error."""
    if form.validate():
        return form
    for field_name, errors in form.errors.items():
        if not errors:
            continue
        field = getattr(form, field_name, None) if field_name else None
        if field is None:
            raise ValidationError(str(errors[0]))
        raise ValidationError(f"{field.label.text}: {errors[0]}")
    raise ValidationError()
