from garden_irrigation.config.run_config import ZoneConfig
from garden_irrigation.core.enums import ZoneOutcomeKind
from garden_irrigation.core.zone_outcome import ZoneOutcome


def start_message(zone: ZoneConfig, moisture: int) -> str:
    return (f"Started watering zone '{zone.name}'; moisture level = {moisture}%. "
            f"Target level = {zone.target_pct}%.")


def create_skipped(zone: ZoneConfig, zone_index: int, moisture: int) -> ZoneOutcome:
    """Factory function to create an outcome for a zone that is already above its threshold."""
    return ZoneOutcome(
        kind=ZoneOutcomeKind.SKIPPED,
        zone_name=zone.name,
        zone_index=zone_index,
        final_moisture=moisture,
        threshold_pct=zone.threshold_pct,
        target_pct=zone.target_pct,
        message=(f"Zone '{zone.name}' not watered because {moisture}% moisture level "
                 f"is already over its threshold of {zone.threshold_pct}%.")
    )


def create_target_reached(zone: ZoneConfig, zone_index: int, moisture: int, effective_minutes: int) -> ZoneOutcome:
    """Factory function to create an outcome for a zone that reached its target moisture."""
    return ZoneOutcome(
        kind=ZoneOutcomeKind.TARGET_REACHED,
        zone_name=zone.name,
        zone_index=zone_index,
        final_moisture=moisture,
        threshold_pct=zone.threshold_pct,
        target_pct=zone.target_pct,
        effective_minutes=effective_minutes,
        message=(f"Finished watering zone '{zone.name}'; target moisture level {zone.target_pct}% reached. "
                 f"(Actual moisture level now = {moisture}%).")
    )


def create_timed_out(zone: ZoneConfig, zone_index: int, moisture: int, effective_minutes: int) -> ZoneOutcome:
    """Factory function to create an outcome for a zone whose timeout timer expired."""
    return ZoneOutcome(
        kind=ZoneOutcomeKind.TIMED_OUT,
        zone_name=zone.name,
        zone_index=zone_index,
        final_moisture=moisture,
        threshold_pct=zone.threshold_pct,
        target_pct=zone.target_pct,
        effective_minutes=effective_minutes,
        message=(f"Stopped watering zone '{zone.name}' because the time limit of {effective_minutes} minutes "
                 f"was reached. Moisture level = {moisture}%.")
    )


def create_stopped_externally(zone: ZoneConfig, zone_index: int, moisture: int, effective_minutes: int) -> ZoneOutcome:
    """Factory function to create an outcome for a valve closed manually or by its own controller."""
    return ZoneOutcome(
        kind=ZoneOutcomeKind.STOPPED_EXTERNALLY,
        zone_name=zone.name,
        zone_index=zone_index,
        final_moisture=moisture,
        threshold_pct=zone.threshold_pct,
        target_pct=zone.target_pct,
        effective_minutes=effective_minutes,
        message=(f"Watering zone '{zone.name}' was stopped manually or by the controller. "
                 f"Moisture level = {moisture}%.")
    )


def create_cancelled(zone: ZoneConfig, zone_index: int, moisture: int, effective_minutes: int) -> ZoneOutcome:
    """Factory function to create an outcome for a zone interrupted by a run cancellation."""
    return ZoneOutcome(
        kind=ZoneOutcomeKind.STOPPED_EXTERNALLY,
        zone_name=zone.name,
        zone_index=zone_index,
        final_moisture=moisture,
        threshold_pct=zone.threshold_pct,
        target_pct=zone.target_pct,
        effective_minutes=effective_minutes,
        message=(f"Watering zone '{zone.name}' was cancelled before a stopping condition was reached. "
                 f"Moisture level = {moisture}%."),
        error="Run cancelled"
    )


def create_failed(zone: ZoneConfig, zone_index: int, moisture: int, error: str,
                  effective_minutes: int = None) -> ZoneOutcome:
    """Factory function to create an outcome for a zone abandoned after an actuator error."""
    return ZoneOutcome(
        kind=ZoneOutcomeKind.FAILED,
        zone_name=zone.name,
        zone_index=zone_index,
        final_moisture=moisture,
        threshold_pct=zone.threshold_pct,
        target_pct=zone.target_pct,
        effective_minutes=effective_minutes,
        message=f"Watering zone '{zone.name}' failed: {error}",
        error=error
    )
