"""Built-in maintenance task templates."""

from pydantic import BaseModel, Field

from src.domain.maintenance import Frequency


class MaintenanceTemplate(BaseModel):
    """Preset for a common maintenance job."""

    key: str = Field(..., description="Stable template identifier")
    title: str
    description: str
    frequency: Frequency
    reminder_days_before: int = Field(..., ge=0)


MAINTENANCE_TEMPLATES: tuple[MaintenanceTemplate, ...] = (
    MaintenanceTemplate(
        key="hvac_filter",
        title="HVAC Filter Replacement",
        description="Replace or clean HVAC air filters",
        frequency=Frequency.MONTHLY,
        reminder_days_before=3,
    ),
    MaintenanceTemplate(
        key="smoke_detector",
        title="Smoke Detector Battery",
        description="Test and replace smoke detector batteries",
        frequency=Frequency.BIANNUAL,
        reminder_days_before=7,
    ),
    MaintenanceTemplate(
        key="gutter_cleaning",
        title="Gutter Cleaning",
        description="Clean gutters and downspouts",
        frequency=Frequency.BIANNUAL,
        reminder_days_before=7,
    ),
    MaintenanceTemplate(
        key="water_heater",
        title="Water Heater Flush",
        description="Drain and flush water heater tank",
        frequency=Frequency.YEARLY,
        reminder_days_before=14,
    ),
    MaintenanceTemplate(
        key="hvac_service",
        title="HVAC Service",
        description="Professional HVAC maintenance and inspection",
        frequency=Frequency.YEARLY,
        reminder_days_before=14,
    ),
    MaintenanceTemplate(
        key="dryer_vent",
        title="Dryer Vent Cleaning",
        description="Clean dryer vent and duct",
        frequency=Frequency.YEARLY,
        reminder_days_before=7,
    ),
    MaintenanceTemplate(
        key="fridge_coils",
        title="Refrigerator Coils",
        description="Clean refrigerator condenser coils",
        frequency=Frequency.YEARLY,
        reminder_days_before=7,
    ),
    MaintenanceTemplate(
        key="septic_pump",
        title="Septic Tank Pump",
        description="Professional septic tank pumping",
        frequency=Frequency.YEARLY,
        reminder_days_before=30,
    ),
)


def get_template(key: str) -> MaintenanceTemplate | None:
    """Look up a template by key."""
    return next((template for template in MAINTENANCE_TEMPLATES if template.key == key), None)
