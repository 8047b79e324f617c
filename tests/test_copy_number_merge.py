import itertools
import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from altcount.merge import CopyNumberMerger  # noqa: E402
from altcount.models import CopyNumberCountRecord, CopyNumberKey  # noqa: E402


def _row(gene: str, entrez: int, alteration: int, study_id: str, altered: int, total: int) -> CopyNumberCountRecord:
    return CopyNumberCountRecord(
        hugo_gene_symbol=gene,
        entrez_gene_id=entrez,
        alteration=alteration,
        study_id=study_id,
        number_of_altered_cases=altered,
        total_count=total,
    )


def test_merge_collapses_same_symbol_with_different_gene_ids() -> None:
    rows = [
        _row("ERBB2", 2064, 2, "S1", 10, 50),
        _row("ERBB2", 99999, 2, "S2", 5, 40),
    ]

    merged = CopyNumberMerger().merge(rows)

    assert len(merged) == 1
    record = merged[0]
    assert record.key() == CopyNumberKey("ERBB2", 2)
    assert record.number_of_altered_cases == 15
    assert record.total_count == 90
    assert record.altered_in_study_ids == {"S1", "S2"}
    # First row seen provides the identity fields.
    assert record.entrez_gene_id == 2064


def test_merge_keeps_alteration_directions_apart() -> None:
    rows = [
        _row("CDKN2A", 1029, -2, "S1", 7, 7),
        _row("CDKN2A", 1029, 2, "S1", 1, 1),
        _row("CDKN2A", 1029, -2, "S2", 3, 3),
    ]

    merged = CopyNumberMerger().merge(rows)

    by_key = {record.key(): record for record in merged}
    assert set(by_key) == {CopyNumberKey("CDKN2A", -2), CopyNumberKey("CDKN2A", 2)}
    assert by_key[CopyNumberKey("CDKN2A", -2)].number_of_altered_cases == 10
    assert by_key[CopyNumberKey("CDKN2A", -2)].altered_in_study_ids == {"S1", "S2"}
    assert by_key[CopyNumberKey("CDKN2A", 2)].altered_in_study_ids == {"S1"}


def test_merge_result_does_not_depend_on_row_order() -> None:
    rows = [
        ("MYC", 4609, 2, "S1", 4, 6),
        ("MYC", 4609, 2, "S2", 2, 2),
        ("MYC", 123, 2, "S3", 9, 11),
    ]

    outcomes = set()
    for ordering in itertools.permutations(rows):
        merged = CopyNumberMerger().merge(_row(*row) for row in ordering)
        assert len(merged) == 1
        record = merged[0]
        outcomes.add(
            (
                record.number_of_altered_cases,
                record.total_count,
                frozenset(record.altered_in_study_ids),
            )
        )

    assert outcomes == {(15, 19, frozenset({"S1", "S2", "S3"}))}


def test_merge_preserves_first_seen_key_order() -> None:
    rows = [
        _row("TP53", 7157, -2, "S1", 1, 1),
        _row("ERBB2", 2064, 2, "S1", 1, 1),
        _row("TP53", 7157, -2, "S2", 1, 1),
    ]

    merged = CopyNumberMerger().merge(rows)

    assert [record.hugo_gene_symbol for record in merged] == ["TP53", "ERBB2"]


def test_merge_of_no_rows_is_empty() -> None:
    assert CopyNumberMerger().merge([]) == []


def test_merge_clears_study_id_only_when_studies_are_combined() -> None:
    rows = [
        _row("ERBB2", 2064, 2, "S1", 10, 50),
        _row("ERBB2", 2064, 2, "S2", 5, 40),
        _row("PTEN", 5728, -2, "S1", 2, 2),
        _row("PTEN", 5728, -2, "S1", 1, 1),
    ]

    erbb2, pten = CopyNumberMerger().merge(rows)

    assert erbb2.study_id is None
    assert erbb2.to_row()["study_id"] is None
    assert erbb2.to_row()["altered_in_study_ids"] == ["S1", "S2"]
    assert pten.study_id == "S1"
