import json
import plistlib
from pathlib import Path

import pytest

PBXPROJ = """// !$*UTF8*$!
{
	archiveVersion = 1;
	classes = {
	};
	objectVersion = 54;
	objects = {

/* Begin PBXNativeTarget section */
		13B07F861A680F5B00A75B9A /* MyApp */ = {
			isa = PBXNativeTarget;
			buildConfigurationList = 13B07F931A680F5B00A75B9A /* Build configuration list for PBXNativeTarget "MyApp" */;
			buildPhases = (
			);
			name = MyApp;
			productName = MyApp;
		};
		00E356ED1AD99517003FC87E /* MyAppTests */ = {
			isa = PBXNativeTarget;
			buildConfigurationList = 00E357021AD99517003FC87E /* Build configuration list for PBXNativeTarget "MyAppTests" */;
			name = MyAppTests;
		};
/* End PBXNativeTarget section */

/* Begin PBXProject section */
		83CBB9F71A601CBA00E9B192 /* Project object */ = {
			isa = PBXProject;
			buildConfigurationList = 83CBB9FA1A601CBA00E9B192 /* Build configuration list for PBXProject "MyApp" */;
			targets = (
				13B07F861A680F5B00A75B9A /* MyApp */,
				00E356ED1AD99517003FC87E /* MyAppTests */,
			);
		};
/* End PBXProject section */

/* Begin XCBuildConfiguration section */
		13B07F941A680F5B00A75B9A /* Debug */ = {
			isa = XCBuildConfiguration;
			buildSettings = {
				ASSETCATALOG_COMPILER_APPICON_NAME = AppIcon;
				CURRENT_PROJECT_VERSION = 42;
				INFOPLIST_FILE = MyApp/Info.plist;
				OTHER_LDFLAGS = (
					"$(inherited)",
					"-ObjC",
				);
				PRODUCT_BUNDLE_IDENTIFIER = "org.reactjs.native.example.$(PRODUCT_NAME:rfc1034identifier)";
				PRODUCT_NAME = MyApp;
			};
			name = Debug;
		};
		13B07F951A680F5B00A75B9A /* Release */ = {
			isa = XCBuildConfiguration;
			buildSettings = {
				CURRENT_PROJECT_VERSION = "42";
				INFOPLIST_FILE = MyApp/Info.plist;
				PRODUCT_NAME = MyApp;
			};
			name = Release;
		};
		00E356F61AD99517003FC87E /* Debug */ = {
			isa = XCBuildConfiguration;
			buildSettings = {
				INFOPLIST_FILE = MyAppTests/Info.plist;
				PRODUCT_NAME = "$(TARGET_NAME)";
			};
			name = Debug;
		};
		00E356F71AD99517003FC87E /* Release */ = {
			isa = XCBuildConfiguration;
			buildSettings = {
				INFOPLIST_FILE = MyAppTests/Info.plist;
				PRODUCT_NAME = "$(TARGET_NAME)";
			};
			name = Release;
		};
/* End XCBuildConfiguration section */

/* Begin XCConfigurationList section */
		00E357021AD99517003FC87E /* Build configuration list for PBXNativeTarget "MyAppTests" */ = {
			isa = XCConfigurationList;
			buildConfigurations = (
				00E356F61AD99517003FC87E /* Debug */,
				00E356F71AD99517003FC87E /* Release */,
			);
			defaultConfigurationIsVisible = 0;
			defaultConfigurationName = Release;
		};
		13B07F931A680F5B00A75B9A /* Build configuration list for PBXNativeTarget "MyApp" */ = {
			isa = XCConfigurationList;
			buildConfigurations = (
				13B07F941A680F5B00A75B9A /* Debug */,
				13B07F951A680F5B00A75B9A /* Release */,
			);
			defaultConfigurationIsVisible = 0;
			defaultConfigurationName = Release;
		};
/* End XCConfigurationList section */
	};
	rootObject = 83CBB9F71A601CBA00E9B192 /* Project object */;
}
"""

GRADLE = """android {
    defaultConfig {
        applicationId "com.myapp"
        minSdkVersion rootProject.ext.minSdkVersion
        versionCode 42
        versionName "1.3.9"
    }
}
"""


def plist_text(data: dict, *, indent: str = "\t") -> str:
    """Render an XML plist like Xcode does, using `indent` per level."""
    text = plistlib.dumps(data, fmt=plistlib.FMT_XML, sort_keys=False).decode("utf-8")
    if indent == "\t":
        return text
    lines = []
    for line in text.split("\n"):
        stripped = line.lstrip("\t")
        lines.append(indent * (len(line) - len(stripped)) + stripped)
    return "\n".join(lines)


@pytest.fixture
def rn_project(tmp_path: Path) -> Path:
    """A minimal React Native style project: package.json, build.gradle, ios/App."""
    (tmp_path / "package.json").write_text(
        json.dumps({"name": "MyApp", "version": "1.4.0"}), encoding="utf-8"
    )

    gradle = tmp_path / "android" / "app" / "build.gradle"
    gradle.parent.mkdir(parents=True)
    gradle.write_text(GRADLE, encoding="utf-8")

    ios = tmp_path / "ios" / "App"
    xcodeproj = ios / "MyApp.xcodeproj"
    xcodeproj.mkdir(parents=True)
    (xcodeproj / "project.pbxproj").write_text(PBXPROJ, encoding="utf-8")

    (ios / "MyApp").mkdir()
    (ios / "MyApp" / "Info.plist").write_text(
        plist_text(
            {
                "CFBundleDisplayName": "MyApp",
                "CFBundleShortVersionString": "1.3.9",
                "CFBundleVersion": "42",
                "UIRequiredDeviceCapabilities": ["armv7"],
            }
        ),
        encoding="utf-8",
    )
    (ios / "MyAppTests").mkdir()
    (ios / "MyAppTests" / "Info.plist").write_text(
        plist_text({"CFBundleShortVersionString": "1.0", "CFBundleVersion": "1"}, indent="  "),
        encoding="utf-8",
    )
    return tmp_path
