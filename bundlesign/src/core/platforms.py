from enum import Enum
from typing import Optional


class TargetOS(Enum):
    """An Apple platform a bundle can be signed for"""

    MACOS = "macOS"
    MAC_CATALYST = "macCatalyst"
    IOS = "iOS"
    IOS_SIMULATOR = "iOSSimulator"
    TVOS = "tvOS"
    TVOS_SIMULATOR = "tvOSSimulator"
    VISIONOS = "visionOS"
    VISIONOS_SIMULATOR = "visionOSSimulator"

    @classmethod
    def parse(cls, text: str) -> "TargetOS":
        for target in cls:
            if target.value.lower() == text.lower():
                return target
        raise ValueError(
            f"Unknown platform '{text}'. Expected one of: "
            + ", ".join(target.value for target in cls)
        )

    @property
    def requires_provisioning(self) -> bool:
        """Whether app bundles need an embedded provisioning profile"""
        return self in (TargetOS.IOS, TargetOS.TVOS, TargetOS.VISIONOS)

    @property
    def profile_platform_name(self) -> Optional[str]:
        """Name used in a provisioning profile's `Platform` array"""
        return {
            TargetOS.IOS: "iOS",
            TargetOS.TVOS: "tvOS",
            TargetOS.VISIONOS: "xrOS",
        }.get(self)

    @property
    def sdk_name(self) -> str:
        return {
            TargetOS.MACOS: "macosx",
            TargetOS.MAC_CATALYST: "macosx",
            TargetOS.IOS: "iphoneos",
            TargetOS.IOS_SIMULATOR: "iphonesimulator",
            TargetOS.TVOS: "appletvos",
            TargetOS.TVOS_SIMULATOR: "appletvsimulator",
            TargetOS.VISIONOS: "xros",
            TargetOS.VISIONOS_SIMULATOR: "xrsimulator",
        }[self]

    @property
    def device_family(self) -> str:
        """`TARGETED_DEVICE_FAMILY` build setting"""
        if self in (TargetOS.TVOS, TargetOS.TVOS_SIMULATOR):
            return "3"
        if self in (TargetOS.VISIONOS, TargetOS.VISIONOS_SIMULATOR):
            return "7"
        return "1,2"
