import sys
from pathlib import Path

import pytest

ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(ROOT / "src"))

from altcount.config import EngineSettings  # noqa: E402
from altcount.enrichment import (  # noqa: E402
    ProfiledCountEnricher,
    first_profile_per_study,
    has_gene_panel_data,
)
from altcount.errors import NotFoundError, StudyNotFoundError  # noqa: E402
from altcount.models import (  # noqa: E402
    AlterationCountRecord,
    AlterationType,
    FilterScope,
    MolecularProfile,
)
from fakes import FakeCountStore, FakeProfileResolver  # noqa: E402

MUT = AlterationType.MUTATION_EXTENDED


def _record(gene: str, *studies: str) -> AlterationCountRecord:
    return AlterationCountRecord(
        hugo_gene_symbol=gene,
        number_of_altered_cases=1,
        total_count=1,
        altered_in_study_ids=set(studies),
    )


def _enricher(store: FakeCountStore, **kwargs) -> ProfiledCountEnricher:
    return ProfiledCountEnricher(
        profile_resolver=kwargs.pop("profile_resolver", FakeProfileResolver()),
        count_store=store,
        **kwargs,
    )


@pytest.mark.parametrize(
    ("panel_ids", "expected"),
    [
        (set(), False),
        ({"WES"}, False),
        ({"WES", "PANEL1"}, True),
        ({"PANEL1"}, True),
        ({"PANEL1", "PANEL2"}, True),
    ],
)
def test_has_gene_panel_data_treats_wes_alone_as_no_panel(panel_ids: set[str], expected: bool) -> None:
    assert has_gene_panel_data(panel_ids) is expected


def test_first_profile_per_study_keeps_first_encountered() -> None:
    profiles = [
        MolecularProfile("s1_cna", "S1", AlterationType.COPY_NUMBER_ALTERATION),
        MolecularProfile("s2_cna", "S2", AlterationType.COPY_NUMBER_ALTERATION),
        MolecularProfile("s1_cna_linear", "S1", AlterationType.COPY_NUMBER_ALTERATION),
    ]

    selected = first_profile_per_study(profiles)

    assert [profile.stable_id for profile in selected] == ["s1_cna", "s2_cna"]


def test_wes_only_gene_falls_back_to_sample_counts_where_wes_is_zero() -> None:
    store = FakeCountStore(
        sample_counts={"S1": 100, "S2": 80},
        panel_ids={"TP53": {"WES"}},
        wes_counts={"S1": 100, "S2": 0},
    )
    record = _record("TP53", "S1", "S2")

    (enriched,) = _enricher(store).enrich([record], FilterScope(study_ids=("S1", "S2")), MUT)

    assert enriched.number_of_profiled_cases == 180
    assert enriched.matching_gene_panel_ids == {"WES"}
    assert enriched.altered_in_study_ids == {"S1", "S2"}


def test_panel_gene_adds_panel_counts_and_relevant_wes_counts() -> None:
    store = FakeCountStore(
        sample_counts={"S1": 150, "S2": 60, "S3": 20},
        gene_counts={"TP53": {"S1": 30, "S3": 20}},
        panel_ids={"TP53": {"WES", "IMPACT468"}},
        wes_counts={"S1": 100, "S2": 0},
    )

    (enriched,) = _enricher(store).enrich(
        [_record("TP53", "S1")],
        FilterScope(study_ids=("S1", "S2", "S3")),
        MUT,
    )

    # 30 + 20 panel-profiled samples, plus 100 + 0 WES samples.
    assert enriched.number_of_profiled_cases == 150
    assert enriched.matching_gene_panel_ids == {"WES", "IMPACT468"}


def test_single_non_wes_panel_counts_as_panel_data() -> None:
    store = FakeCountStore(
        sample_counts={"S1": 500},
        gene_counts={"KRAS": {"S1": 40}},
        panel_ids={"KRAS": {"IMPACT341"}},
    )

    (enriched,) = _enricher(store).enrich([_record("KRAS", "S1")], FilterScope(study_ids=("S1",)), MUT)

    assert enriched.number_of_profiled_cases == 40


def test_gene_without_any_table_entries_gets_zero_or_sample_fallback() -> None:
    store = FakeCountStore(sample_counts={"S1": 12})

    unknown, in_scope = _enricher(store).enrich(
        [_record("NOVEL1", "S9"), _record("NOVEL2", "S1")],
        FilterScope(study_ids=("S1",)),
        MUT,
    )

    # S9 lies outside the scope: it stays in the study set but adds nothing.
    assert unknown.number_of_profiled_cases == 0
    assert unknown.altered_in_study_ids == {"S9"}
    assert unknown.matching_gene_panel_ids == set()
    assert in_scope.number_of_profiled_cases == 12


def test_enrichment_assigns_every_record_once_in_parallel() -> None:
    genes = [f"GENE{index}" for index in range(200)]
    store = FakeCountStore(
        sample_counts={"S1": 10, "S2": 20},
        gene_counts={gene: {"S1": index % 7} for index, gene in enumerate(genes)},
        panel_ids={gene: {"PANEL"} for gene in genes[::2]},
        wes_counts={"S2": 5},
    )
    records = [_record(gene, "S1") for gene in genes]

    enriched = _enricher(store, settings=EngineSettings(max_workers=4)).enrich(
        records,
        FilterScope(study_ids=("S1", "S2")),
        MUT,
    )

    assert [record.hugo_gene_symbol for record in enriched] == genes
    for index, record in enumerate(enriched):
        assert record.number_of_profiled_cases is not None
        assert record.number_of_profiled_cases >= 0
        if index % 2 == 0:
            assert record.number_of_profiled_cases == index % 7 + 5
        else:
            assert record.number_of_profiled_cases == 10 + 5


def test_enrichment_passes_first_profile_per_study_to_store() -> None:
    store = FakeCountStore()
    resolver = FakeProfileResolver(
        [
            MolecularProfile("s1_mutations", "S1", MUT),
            MolecularProfile("s1_mutations_uncalled", "S1", MUT),
            MolecularProfile("s1_sv", "S1", AlterationType.STRUCTURAL_VARIANT),
        ]
    )

    _enricher(store, profile_resolver=resolver).enrich(
        [_record("TP53", "S1")],
        FilterScope(study_ids=("S1",)),
        MUT,
    )

    assert [profile.stable_id for profile in store.profiles_seen] == ["s1_mutations"]


def test_unknown_study_aborts_enrichment() -> None:
    store = FakeCountStore(sample_counts={"S1": 5})
    resolver = FakeProfileResolver(known_studies={"S1"})
    record = _record("TP53", "S1")

    with pytest.raises(StudyNotFoundError) as excinfo:
        _enricher(store, profile_resolver=resolver).enrich(
            [record],
            FilterScope(study_ids=("S1", "missing_study")),
            MUT,
        )

    assert isinstance(excinfo.value, NotFoundError)
    assert excinfo.value.study_id == "missing_study"
    assert record.number_of_profiled_cases is None


def test_enrichment_of_no_records_returns_empty_list() -> None:
    assert _enricher(FakeCountStore()).enrich([], FilterScope(study_ids=("S1",)), MUT) == []
