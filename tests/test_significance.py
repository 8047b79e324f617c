import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from altcount.errors import StudyNotFoundError  # noqa: E402
from altcount.models import (  # noqa: E402
    CopyNumberCountRecord,
    CopyNumberKey,
    FilterScope,
    SignificantRegion,
)
from altcount.significance import SignificanceAnnotator, build_significance_table  # noqa: E402
from fakes import FakeSignificanceStore, FakeStudyScopeResolver  # noqa: E402


def _cna(gene: str, alteration: int) -> CopyNumberCountRecord:
    return CopyNumberCountRecord(
        hugo_gene_symbol=gene,
        alteration=alteration,
        number_of_altered_cases=1,
        total_count=1,
    )


def _annotator(store: FakeSignificanceStore) -> SignificanceAnnotator:
    return SignificanceAnnotator(
        study_scope_resolver=FakeStudyScopeResolver(),
        significance_store=store,
    )


def test_significance_table_keeps_lowest_q_value_per_key() -> None:
    table = build_significance_table(
        [
            SignificantRegion("S1", 1, True, 0.01, ("ERBB2",)),
            SignificantRegion("S1", 2, True, 0.001, ("ERBB2", "GRB7")),
            SignificantRegion("S1", 3, False, 0.2, ("ERBB2",)),
        ]
    )

    assert table == {
        CopyNumberKey("ERBB2", 2): 0.001,
        CopyNumberKey("GRB7", 2): 0.001,
        CopyNumberKey("ERBB2", -2): 0.2,
    }


def test_single_study_scope_annotates_matching_records_only() -> None:
    store = FakeSignificanceStore(
        {
            "S1": [
                SignificantRegion("S1", 1, True, 0.003, ("ERBB2",)),
                SignificantRegion("S1", 2, False, 0.04, ("CDKN2A",)),
            ]
        }
    )
    records = [_cna("ERBB2", 2), _cna("CDKN2A", -2), _cna("CDKN2A", 2), _cna("TP53", -1)]

    annotated = _annotator(store).annotate(records, FilterScope(study_ids=("S1",)))

    assert [record.q_value for record in annotated] == [0.003, 0.04, None, None]
    assert store.fetched == ["S1"]


def test_multi_study_scope_never_annotates() -> None:
    store = FakeSignificanceStore(
        {
            "S1": [SignificantRegion("S1", 1, True, 0.003, ("ERBB2",))],
            "S2": [SignificantRegion("S2", 1, True, 0.001, ("ERBB2",))],
        }
    )
    records = [_cna("ERBB2", 2)]

    annotated = _annotator(store).annotate(records, FilterScope(study_ids=("S1", "S2")))

    assert annotated[0].q_value is None
    assert store.fetched == []


def test_samples_from_one_study_count_as_single_study_scope() -> None:
    store = FakeSignificanceStore({"S1": [SignificantRegion("S1", 1, True, 0.5, ("MYC",))]})
    scope = FilterScope(samples=(("S1", "P-01"), ("S1", "P-02")))

    (record,) = _annotator(store).annotate([_cna("MYC", 2)], scope)

    assert record.q_value == 0.5


def test_missing_single_study_propagates_not_found() -> None:
    store = FakeSignificanceStore({})

    with pytest.raises(StudyNotFoundError):
        _annotator(store).annotate([_cna("ERBB2", 2)], FilterScope(study_ids=("gone",)))
