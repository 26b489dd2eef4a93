from ..errors import ValidationError


def form_error(form):
    """ValidationError carrying the first field error of ``form``."""
    for field, errors in form.errors.items():
        if errors:
            return ValidationError(f"{field}: {errors[0]}")
    return ValidationError("Invalid request body")
