# solar_monitor/models/health.py
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, List, Optional

from solar_monitor.models.reading import Reading


@dataclass
class DeviceHealth:
    device_id: str
    status: str            # healthy | warning | critical | offline
    message: str
    last_update: Optional[datetime]
    minutes_since_update: Optional[int]
    latest: Optional[Reading] = None
    recommendations: List[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, Any]:
        return {
            "deviceId": self.device_id,
            "status": self.status,
            "message": self.message,
            "lastUpdate": self.last_update.isoformat() if self.last_update else None,
            "minutesSinceUpdate": self.minutes_since_update,
            "latestData": self.latest.as_dict() if self.latest else None,
            "recommendations": list(self.recommendations),
        }
