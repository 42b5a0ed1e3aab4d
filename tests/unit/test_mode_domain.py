import copy
from pathlib import Path

import pytest
import yaml

from compiler_tester.config import DOMAIN_PATH
from compiler_tester.modes import ModeDomain, Version, load_domain
from compiler_tester.modes.domain import FRONTEND_OPTIMIZER, SECONDARY_OPTIMIZER, build_domain


@pytest.fixture
def raw_domain() -> dict:
    with DOMAIN_PATH.open(encoding="utf-8") as f:
        return yaml.safe_load(f)


class TestLoadDomain:
    def test_codegens_in_declaration_order(self, domain: ModeDomain) -> None:
        assert domain.codegen_letters == ("Y", "E", "I", "V")
        assert domain.languages == ("solidity", "vyper")

    def test_compatibility_table(self, domain: ModeDomain) -> None:
        yul = domain.codegen("Y")
        vyper = domain.codegen("V")
        assert yul is not None and vyper is not None
        assert yul.flag_field == FRONTEND_OPTIMIZER
        assert vyper.flag_field == SECONDARY_OPTIMIZER
        assert yul.min_version == Version(0, 8, 0)
        assert not yul.accepts_version(Version(0, 7, 6))
        assert domain.codegen("Q") is None

    def test_levels_and_subsets(self, domain: ModeDomain) -> None:
        assert domain.middle.values == ("0", "1", "2", "3", "s", "z")
        assert domain.middle.subset("^") == ("3", "z")
        assert domain.backend.subset("^") is None

    def test_language_by_extension(self, domain: ModeDomain) -> None:
        assert domain.language_of("simple/add.sol") == "solidity"
        assert domain.language_of("vyper/a.vy") == "vyper"
        assert domain.language_of("README.md") is None
        assert domain.codegens_for("solidity") == ("Y", "E", "I")

    def test_cached(self) -> None:
        assert load_domain() is load_domain()

    def test_non_mapping_file(self, tmp_path: Path) -> None:
        path = tmp_path / "domain.yaml"
        path.write_text("- not a mapping\n", encoding="utf-8")
        with pytest.raises(RuntimeError, match="must contain a mapping"):
            load_domain(path)


class TestBuildDomain:
    def test_unknown_language(self, raw_domain: dict) -> None:
        data = copy.deepcopy(raw_domain)
        data["codegens"]["Y"]["language"] = "cobol"
        with pytest.raises(RuntimeError, match="Unknown language 'cobol'"):
            build_domain(data)

    def test_unknown_flag_field(self, raw_domain: dict) -> None:
        data = copy.deepcopy(raw_domain)
        data["codegens"]["V"]["flag"] = "turbo"
        with pytest.raises(RuntimeError, match="Unknown flag field"):
            build_domain(data)

    def test_subset_must_reference_known_values(self, raw_domain: dict) -> None:
        data = copy.deepcopy(raw_domain)
        data["levels"]["middle"]["subsets"]["^"] = ["3", "9"]
        with pytest.raises(RuntimeError, match="unknown values"):
            build_domain(data)

    def test_missing_section(self, raw_domain: dict) -> None:
        data = copy.deepcopy(raw_domain)
        del data["levels"]
        with pytest.raises(RuntimeError, match="missing 'levels'"):
            build_domain(data)
