from core.cooldown import CooldownLedger
from core.dispatcher import Dispatcher, channel_name
from core.fingerprint import ChangeDetector, FingerprintPolicy, compute_fingerprint
from core.intake import UpdateIntake
from core.registry import RegionRegistry
from core.schedule import RegionSchedule
from core.scheduler import Scheduler
from core.status import StatusReporter

__all__ = [
    "ChangeDetector",
    "CooldownLedger",
    "Dispatcher",
    "FingerprintPolicy",
    "RegionRegistry",
    "RegionSchedule",
    "Scheduler",
    "StatusReporter",
    "UpdateIntake",
    "channel_name",
    "compute_fingerprint",
]
