import math

from models import ContainerSize, SlotKey


def _label(field_name):
    return field_name.replace("_", " ").title()


def validate_required(value, field_name, errors):
    if value is None or not str(value).strip():
        errors[field_name] = f"{_label(field_name)} is required."


def validate_positive_float(value, field_name, errors):
    if value is None or value == "":
        errors[field_name] = f"{_label(field_name)} is required."
        return
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        parsed = None
    if parsed is None or not math.isfinite(parsed) or parsed <= 0:
        errors[field_name] = f"{_label(field_name)} must be a positive number."


def validate_size(value, field_name, errors):
    try:
        ContainerSize.parse(value)
    except ValueError:
        errors[field_name] = f"{_label(field_name)} must be 20 or 40."


def validate_location(value, field_name, errors):
    try:
        SlotKey.parse(value)
    except ValueError:
        errors[field_name] = f"{_label(field_name)} must look like BLOCK-BB-RR-T."
