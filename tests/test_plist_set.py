import plistlib
from datetime import datetime

import pytest

from conftest import PBXPROJ, plist_text

from app_version_sync.errors import MalformedPlist, MissingFile
from app_version_sync.pbxproj import XcodeProjectDocument
from app_version_sync.plist_set import (
    PlistSet,
    detect_indent,
    discover_plist_paths,
    load_plist_file,
    render_plist,
    resolve_plist_path,
)
from app_version_sync.types import VersionOptions


def test_discover_plist_paths_dedupes_in_document_order() -> None:
    doc = XcodeProjectDocument.parse(PBXPROJ)
    assert discover_plist_paths(doc) == ["MyApp/Info.plist", "MyAppTests/Info.plist"]


def test_resolve_plist_path_strips_srcroot(tmp_path) -> None:
    ios = str(tmp_path)
    assert resolve_plist_path(ios, "MyApp/Info.plist") == str(tmp_path / "MyApp" / "Info.plist")
    assert resolve_plist_path(ios, "$(SRCROOT)/MyApp/Info.plist") == str(
        tmp_path / "MyApp" / "Info.plist"
    )
    assert resolve_plist_path(ios, "${PROJECT_DIR}/A.plist") == str(tmp_path / "A.plist")


def test_detect_indent() -> None:
    data = {"A": "1", "B": {"C": ["x"]}}
    assert detect_indent(plist_text(data)) == "\t"
    assert detect_indent(plist_text(data, indent="  ")) == "  "
    assert detect_indent(plist_text(data, indent="    ")) == "    "
    assert detect_indent("<plist>\n<dict/>\n</plist>\n") == "\t"


def test_round_trip_keeps_untouched_values(tmp_path) -> None:
    original = {
        "CFBundleDisplayName": "My & App",
        "CFBundleShortVersionString": "1.0.0",
        "CFBundleVersion": "9",
        "LSRequiresIPhoneOS": True,
        "UIDeviceFamily": [1, 2],
        "Icon": b"\x00\x01binary\xff" * 20,
        "Built": datetime(2020, 1, 2, 3, 4, 5),
        "Nested": {"Ratio": 1.5, "Note": "line one\nline two"},
    }
    path = tmp_path / "Info.plist"
    path.write_text(plist_text(original, indent="  "), encoding="utf-8")

    plists = PlistSet.load(str(tmp_path), ["Info.plist"])
    plists.apply("2.5.1-beta.3", VersionOptions())
    assert plists.write() == [str(path)]

    reparsed = plistlib.loads(path.read_bytes())
    assert reparsed["CFBundleShortVersionString"] == "2.5.1"
    assert reparsed["CFBundleVersion"] == "10"
    for key, value in original.items():
        if key not in ("CFBundleShortVersionString", "CFBundleVersion"):
            assert reparsed[key] == value
    assert list(reparsed) == list(original)


def test_tab_indented_plist_stays_tab_indented(tmp_path) -> None:
    path = tmp_path / "Info.plist"
    path.write_text(plist_text({"CFBundleVersion": "1", "A": {"B": "c"}}), encoding="utf-8")

    plists = PlistSet.load(str(tmp_path), ["Info.plist"])
    plists.apply("1.0.0", VersionOptions())
    plists.write()

    text = path.read_text(encoding="utf-8")
    assert "\t<key>CFBundleVersion</key>\n\t<string>2</string>" in text
    assert "\t\t<key>B</key>" in text
    assert "\n  <" not in text


def test_space_indented_plist_stays_space_indented(tmp_path) -> None:
    path = tmp_path / "Info.plist"
    path.write_text(
        plist_text({"CFBundleVersion": "1", "A": {"B": "c"}}, indent="  "), encoding="utf-8"
    )

    plists = PlistSet.load(str(tmp_path), ["Info.plist"])
    plists.apply("1.0.0", VersionOptions())
    plists.write()

    text = path.read_text(encoding="utf-8")
    assert "\n  <key>CFBundleShortVersionString</key>\n  <string>1.0.0</string>" in text
    assert "\n    <key>B</key>" in text
    assert "\t" not in text


def test_render_plist_keeps_header_and_footer_verbatim() -> None:
    header = (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        "<!-- generated, do not edit -->\n"
        '<plist version="1.0">\n'
    )
    footer = "\n</plist>\n"
    text = header + "<dict>\n\t<key>A</key>\n\t<string>x</string>\n</dict>" + footer

    out = render_plist(text, {"A": "y"})

    assert out == header + "<dict>\n\t<key>A</key>\n\t<string>y</string>\n</dict>" + footer


def test_apply_respects_policy_flags(tmp_path) -> None:
    path = tmp_path / "Info.plist"
    path.write_text(
        plist_text({"CFBundleShortVersionString": "0.1", "CFBundleVersion": "5"}), encoding="utf-8"
    )

    plists = PlistSet.load(str(tmp_path), ["Info.plist"])
    plists.apply("3.0.0", VersionOptions(increment_build=True))
    assert plists.files[0].data == {"CFBundleShortVersionString": "0.1", "CFBundleVersion": "6"}

    plists = PlistSet.load(str(tmp_path), ["Info.plist"])
    plists.apply("3.0.0", VersionOptions(never_increment_build=True))
    assert plists.files[0].data == {"CFBundleShortVersionString": "3.0.0", "CFBundleVersion": "5"}


def test_missing_build_version_starts_at_one(tmp_path) -> None:
    (tmp_path / "Info.plist").write_text(plist_text({"Name": "x"}), encoding="utf-8")
    plists = PlistSet.load(str(tmp_path), ["Info.plist"])
    plists.apply("not-semver", VersionOptions())
    assert plists.files[0].data == {
        "Name": "x",
        "CFBundleShortVersionString": "not-semver",
        "CFBundleVersion": "1",
    }


def test_unchanged_plist_is_not_rewritten(tmp_path) -> None:
    path = tmp_path / "Info.plist"
    path.write_text(
        plist_text({"CFBundleShortVersionString": "1.0.0", "CFBundleVersion": "1"}),
        encoding="utf-8",
    )
    plists = PlistSet.load(str(tmp_path), ["Info.plist"])
    plists.apply("1.0.0", VersionOptions(never_increment_build=True))
    assert plists.write() == []


def test_load_plist_file_errors(tmp_path) -> None:
    with pytest.raises(MissingFile):
        load_plist_file(str(tmp_path), "Missing.plist")

    (tmp_path / "Bad.plist").write_text("<plist><dict><key>A</key>", encoding="utf-8")
    with pytest.raises(MalformedPlist):
        load_plist_file(str(tmp_path), "Bad.plist")

    (tmp_path / "Array.plist").write_text(plist_text(["a"]), encoding="utf-8")
    with pytest.raises(MalformedPlist):
        load_plist_file(str(tmp_path), "Array.plist")


def test_unparseable_values_raise_malformed_plist(tmp_path) -> None:
    (tmp_path / "Date.plist").write_text(
        plist_text({"Built": "x"}).replace("<string>x</string>", "<date>garbage</date>"),
        encoding="utf-8",
    )
    with pytest.raises(MalformedPlist):
        load_plist_file(str(tmp_path), "Date.plist")

    (tmp_path / "Big.plist").write_text(
        plist_text({"Big": 1}).replace("1<", "99999999999999999999999<"),
        encoding="utf-8",
    )
    plists = PlistSet.load(str(tmp_path), ["Big.plist"])
    with pytest.raises(MalformedPlist, match="Big.plist"):
        plists.apply("1.0.0", VersionOptions())


def test_crlf_plist_keeps_crlf_line_endings(tmp_path) -> None:
    path = tmp_path / "Info.plist"
    original = plist_text({"CFBundleVersion": "1", "A": {"B": "c"}}).replace("\n", "\r\n")
    path.write_bytes(original.encode("utf-8"))

    plists = PlistSet.load(str(tmp_path), ["Info.plist"])
    plists.apply("1.0.0", VersionOptions())
    plists.write()

    text = path.read_bytes().decode("utf-8")
    assert text.count("\n") == text.count("\r\n")
    assert "\r\n\t<key>CFBundleShortVersionString</key>\r\n\t<string>1.0.0</string>" in text
    assert "\r\n\t\t<key>B</key>" in text


def test_indented_root_dict_keeps_nesting() -> None:
    text = (
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<plist version="1.0">\n'
        "  <dict>\n"
        "    <key>CFBundleVersion</key>\n"
        "    <string>1</string>\n"
        "    <key>A</key>\n"
        "    <dict>\n"
        "      <key>B</key>\n"
        "      <string>c</string>\n"
        "    </dict>\n"
        "  </dict>\n"
        "</plist>\n"
    )

    out = render_plist(text, {"CFBundleVersion": "2", "A": {"B": "c"}})

    assert out == text.replace("<string>1</string>", "<string>2</string>")
    assert "\n    <key>CFBundleVersion</key>" in out


def test_multiline_string_value_is_not_reindented() -> None:
    text = (
        '<plist version="1.0">\n'
        "  <dict>\n"
        "    <key>Note</key>\n"
        "    <string>a</string>\n"
        "  </dict>\n"
        "</plist>\n"
    )

    out = render_plist(text, {"Note": "line one\n"})

    assert "    <string>line one\n</string>\n  </dict>" in out
