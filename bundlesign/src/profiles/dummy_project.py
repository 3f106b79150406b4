"""Throwaway build project used to make the build tool provision a bundle id.

The project holds one application target with a single trivial source file.
Its bundle identifier and development team are the ones a profile is being
requested for, and signing is set to automatic so that building it with
provisioning updates allowed registers the device and creates the profile.
"""

import hashlib
import plistlib
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict

from bundlesign.src.core.errors import DummyProjectError
from bundlesign.src.core.platforms import TargetOS

PROJECT_NAME = "Dummy"

_UNQUOTED = re.compile(r"^[A-Za-z0-9_./]+$")


@dataclass(frozen=True)
class DummyProject:
    directory: Path
    xcodeproj: Path
    scheme: str


def _object_id(key: str) -> str:
    return hashlib.md5(key.encode("utf-8")).hexdigest()[:24].upper()


def _encode(value: Any, indent: int = 0) -> str:
    """Serialise to the old-style (OpenStep) plist text project files use"""
    pad = "\t" * (indent + 1)
    if isinstance(value, dict):
        entries = "".join(
            f"{pad}{_encode(key)} = {_encode(item, indent + 1)};\n"
            for key, item in value.items()
        )
        return "{\n" + entries + "\t" * indent + "}"
    if isinstance(value, list):
        entries = "".join(f"{pad}{_encode(item, indent + 1)},\n" for item in value)
        return "(\n" + entries + "\t" * indent + ")"
    text = str(value)
    if _UNQUOTED.match(text):
        return text
    return '"' + text.replace("\\", "\\\\").replace('"', '\\"') + '"'


def product_name_for(bundle_identifier: str) -> str:
    name = bundle_identifier.split(".")[-1]
    if not re.match(r"^[A-Za-z0-9_-]+$", name):
        raise DummyProjectError(
            bundle_identifier, f"Failed to parse bundle identifier '{bundle_identifier}'"
        )
    return name


def build_project_file(
    bundle_identifier: str, team_identifier: str, target_os: TargetOS, product_name: str
) -> str:
    """Contents of `project.pbxproj` for the single-target dummy app"""
    ids = {
        name: _object_id(f"{bundle_identifier}:{name}")
        for name in (
            "project", "target", "main_group", "sources_group", "products_group",
            "main_ref", "info_ref", "product_ref", "main_build", "sources_phase",
            "project_configs", "target_configs", "project_debug", "target_debug",
        )
    }

    common_settings = {
        "DEVELOPMENT_TEAM": team_identifier,
        "SDKROOT": target_os.sdk_name,
        "SWIFT_VERSION": "5.0",
    }
    if target_os == TargetOS.VISIONOS:
        common_settings["XROS_DEPLOYMENT_TARGET"] = "1.0"

    objects: Dict[str, Dict[str, Any]] = {
        ids["main_build"]: {"isa": "PBXBuildFile", "fileRef": ids["main_ref"]},
        ids["main_ref"]: {
            "isa": "PBXFileReference",
            "lastKnownFileType": "sourcecode.swift",
            "path": "main.swift",
            "sourceTree": "<group>",
        },
        ids["info_ref"]: {
            "isa": "PBXFileReference",
            "lastKnownFileType": "text.plist.xml",
            "path": "Info.plist",
            "sourceTree": "<group>",
        },
        ids["product_ref"]: {
            "isa": "PBXFileReference",
            "explicitFileType": "wrapper.application",
            "includeInIndex": "0",
            "path": f"{product_name}.app",
            "sourceTree": "BUILT_PRODUCTS_DIR",
        },
        ids["main_group"]: {
            "isa": "PBXGroup",
            "children": [ids["sources_group"], ids["products_group"]],
            "sourceTree": "<group>",
        },
        ids["sources_group"]: {
            "isa": "PBXGroup",
            "children": [ids["main_ref"], ids["info_ref"]],
            "path": "Sources",
            "sourceTree": "<group>",
        },
        ids["products_group"]: {
            "isa": "PBXGroup",
            "children": [ids["product_ref"]],
            "name": "Products",
            "sourceTree": "<group>",
        },
        ids["sources_phase"]: {
            "isa": "PBXSourcesBuildPhase",
            "buildActionMask": "2147483647",
            "files": [ids["main_build"]],
            "runOnlyForDeploymentPostprocessing": "0",
        },
        ids["target"]: {
            "isa": "PBXNativeTarget",
            "buildConfigurationList": ids["target_configs"],
            "buildPhases": [ids["sources_phase"]],
            "buildRules": [],
            "dependencies": [],
            "name": product_name,
            "productName": product_name,
            "productReference": ids["product_ref"],
            "productType": "com.apple.product-type.application",
        },
        ids["project"]: {
            "isa": "PBXProject",
            "attributes": {
                "LastUpgradeCheck": "1500",
                "TargetAttributes": {
                    ids["target"]: {
                        "DevelopmentTeam": team_identifier,
                        "ProvisioningStyle": "Automatic",
                    }
                },
            },
            "buildConfigurationList": ids["project_configs"],
            "compatibilityVersion": "Xcode 14.0",
            "developmentRegion": "en",
            "hasScannedForEncodings": "0",
            "knownRegions": ["en", "Base"],
            "mainGroup": ids["main_group"],
            "productRefGroup": ids["products_group"],
            "projectDirPath": "",
            "projectRoot": "",
            "targets": [ids["target"]],
        },
        ids["project_debug"]: {
            "isa": "XCBuildConfiguration",
            "buildSettings": dict(common_settings),
            "name": "Debug",
        },
        ids["target_debug"]: {
            "isa": "XCBuildConfiguration",
            "buildSettings": {
                **common_settings,
                "CODE_SIGN_STYLE": "Automatic",
                "GENERATE_INFOPLIST_FILE": "NO",
                "INFOPLIST_FILE": "Sources/Info.plist",
                "PRODUCT_BUNDLE_IDENTIFIER": bundle_identifier,
                "PRODUCT_NAME": "$(TARGET_NAME)",
                "TARGETED_DEVICE_FAMILY": target_os.device_family,
            },
            "name": "Debug",
        },
        ids["project_configs"]: {
            "isa": "XCConfigurationList",
            "buildConfigurations": [ids["project_debug"]],
            "defaultConfigurationIsVisible": "0",
            "defaultConfigurationName": "Debug",
        },
        ids["target_configs"]: {
            "isa": "XCConfigurationList",
            "buildConfigurations": [ids["target_debug"]],
            "defaultConfigurationIsVisible": "0",
            "defaultConfigurationName": "Debug",
        },
    }

    project = {
        "archiveVersion": "1",
        "classes": {},
        "objectVersion": "56",
        "objects": objects,
        "rootObject": ids["project"],
    }
    return "// !$*UTF8*$!\n" + _encode(project) + "\n"


def build_scheme_file(product_name: str, target_id: str) -> str:
    reference = (
        f'BuildableIdentifier = "primary" BlueprintIdentifier = "{target_id}" '
        f'BuildableName = "{product_name}.app" BlueprintName = "{product_name}" '
        f'ReferencedContainer = "container:{PROJECT_NAME}.xcodeproj"'
    )
    return f"""<?xml version="1.0" encoding="UTF-8"?>
<Scheme LastUpgradeVersion = "1500" version = "1.7">
   <BuildAction parallelizeBuildables = "YES" buildImplicitDependencies = "YES">
      <BuildActionEntries>
         <BuildActionEntry buildForRunning = "YES" buildForTesting = "YES" buildForProfiling = "YES" buildForArchiving = "YES" buildForAnalyzing = "YES">
            <BuildableReference {reference}>
            </BuildableReference>
         </BuildActionEntry>
      </BuildActionEntries>
   </BuildAction>
   <LaunchAction buildConfiguration = "Debug">
   </LaunchAction>
</Scheme>
"""


def write_dummy_project(
    directory: Path, bundle_identifier: str, team_identifier: str, target_os: TargetOS
) -> DummyProject:
    """Materialise the dummy project inside `directory`"""
    product_name = product_name_for(bundle_identifier)
    sources_directory = directory / "Sources"
    xcodeproj = directory / f"{PROJECT_NAME}.xcodeproj"
    schemes_directory = xcodeproj / "xcshareddata" / "xcschemes"

    info_plist = {
        "CFBundleExecutable": product_name,
        "CFBundleIdentifier": bundle_identifier,
        "CFBundleInfoDictionaryVersion": "6.0",
        "CFBundleName": product_name,
        "CFBundlePackageType": "APPL",
    }

    try:
        sources_directory.mkdir(parents=True, exist_ok=True)
        schemes_directory.mkdir(parents=True, exist_ok=True)
        (sources_directory / "main.swift").write_text('print("Hello, World!")\n')
        with open(sources_directory / "Info.plist", "wb") as f:
            plistlib.dump(info_plist, f, fmt=plistlib.FMT_XML)
        (xcodeproj / "project.pbxproj").write_text(
            build_project_file(bundle_identifier, team_identifier, target_os, product_name)
        )
        (schemes_directory / f"{product_name}.xcscheme").write_text(
            build_scheme_file(product_name, _object_id(f"{bundle_identifier}:target"))
        )
    except OSError as e:
        raise DummyProjectError(
            bundle_identifier, f"Failed to write project files in '{directory}'", str(e)
        )

    return DummyProject(directory=directory, xcodeproj=xcodeproj, scheme=product_name)
