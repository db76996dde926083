"""Utility functions for shipment weight warnings."""

LIGHT_SHIPMENT_WARNING = (
    "Shipment is below the minimum chargeable weight for full truckload "
    "baselines; only vendor quotes are shown."
)


def check_thresholds(chargeable_weight: float, min_serviceable_weight: float = 500) -> str:
    """Return a warning message when the shipment is too light for baselines.

    Parameters
    ----------
    chargeable_weight:
        Chargeable shipment weight in kilograms.
    min_serviceable_weight:
        Lightest chargeable weight the baseline carriers accept.

    Returns
    -------
    str
        :data:`LIGHT_SHIPMENT_WARNING` below the minimum, otherwise ``""``.
    """

    if chargeable_weight < min_serviceable_weight:
        return LIGHT_SHIPMENT_WARNING
    return ""


def is_too_light(chargeable_weight: float, min_serviceable_weight: float = 500) -> bool:
    return bool(check_thresholds(chargeable_weight, min_serviceable_weight))
