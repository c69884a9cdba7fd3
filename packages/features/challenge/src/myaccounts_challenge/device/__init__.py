"""Device-local state: marker, trust grant and channel preference."""

from __future__ import annotations

from .marker import DeviceMarkerProvider
from .preferences import ChannelPreferenceStore
from .trust import TrustedDeviceMarker, TrustedDeviceRecord

__all__: list[str] = [
    "DeviceMarkerProvider",
    "ChannelPreferenceStore",
    "TrustedDeviceMarker",
    "TrustedDeviceRecord",
]
