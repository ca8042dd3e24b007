from .auto_reply import AutoReplyAction, AutoReplyConfig
from .base import RemoteAction, ShellAction
from .gpo_filter import GpoFilterConfig, GpoSecurityFilterAction
from .installer import InstallerConfig, PackageInstallAction
from .latency import LatencyConfig, LatencyProbeAction
from .print_queue import PrintQueueClearAction
from .profile_cleanup import ProfileCleanupAction, ProfileCleanupConfig
from .scheduled_task import ScheduledTaskAction, ScheduledTaskConfig
from .service import ServiceStartAction

__all__ = [
    "AutoReplyAction",
    "AutoReplyConfig",
    "GpoFilterConfig",
    "GpoSecurityFilterAction",
    "InstallerConfig",
    "LatencyConfig",
    "LatencyProbeAction",
    "PackageInstallAction",
    "PrintQueueClearAction",
    "ProfileCleanupAction",
    "ProfileCleanupConfig",
    "RemoteAction",
    "ScheduledTaskAction",
    "ScheduledTaskConfig",
    "ServiceStartAction",
    "ShellAction",
]
