import pytest

from protoc_wire.profile import Profile, ProfileError, ProfileLoader, TypeConfig, parse_profile


JAVA_WIRE = """\
syntax = "wire2";
package squareup.dinosaurs;

// Dates come from java.time.
type squareup.geology.Period {
  target java.time.Period using com.example.PeriodAdapter#ADAPTER;
}

type Dinosaur {
  target com.example.Dino;
}
"""


class TestParseProfile:
    def test_type_blocks(self):
        configs = parse_profile(JAVA_WIRE, source="java.wire")
        assert configs == [
            TypeConfig(
                "squareup.geology.Period",
                "java.time.Period",
                "com.example.PeriodAdapter#ADAPTER",
                "java.wire",
            ),
            TypeConfig("squareup.dinosaurs.Dinosaur", "com.example.Dino", None, "java.wire"),
        ]

    def test_empty_profile(self):
        profile = Profile()
        assert len(profile) == 0
        assert profile.target("a.B") is None
        assert profile.adapter("a.B") is None


class TestProfileLoader:
    def test_loads_named_profile_only(self, tmp_path):
        (tmp_path / "squareup").mkdir()
        (tmp_path / "squareup" / "java.wire").write_text(JAVA_WIRE, encoding="utf-8")
        (tmp_path / "android.wire").write_text(
            "type a.B { target x.Y; }\n", encoding="utf-8"
        )

        profile = ProfileLoader("java").load([str(tmp_path)])
        assert len(profile) == 2
        assert profile.target("squareup.geology.Period") == "java.time.Period"
        assert profile.adapter("squareup.geology.Period") == "com.example.PeriodAdapter#ADAPTER"
        assert profile.target("a.B") is None

        android = ProfileLoader("android").load([str(tmp_path)])
        assert android.target("a.B") == "x.Y"

    def test_no_profile_files(self, tmp_path):
        assert len(ProfileLoader("kotlin").load([str(tmp_path)])) == 0

    def test_conflicting_targets(self, tmp_path):
        (tmp_path / "one").mkdir()
        (tmp_path / "two").mkdir()
        (tmp_path / "one" / "java.wire").write_text("type a.B { target x.One; }\n", encoding="utf-8")
        (tmp_path / "two" / "java.wire").write_text("type a.B { target x.Two; }\n", encoding="utf-8")

        with pytest.raises(ProfileError, match="Conflicting targets for a.B"):
            ProfileLoader("java").load([str(tmp_path)])
