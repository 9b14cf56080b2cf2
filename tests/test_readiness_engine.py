"""Tests for the readiness scoring engine."""

import random

import pytest

from dealgate.models.enums import ReadinessStatus, RequirementCategory
from dealgate.modules.readiness.engine import (
    MISSING_REASON,
    UploadedDocumentMeta,
    compute_readiness,
    evaluate_requirement,
    percentage,
)
from dealgate.modules.readiness.requirements import (
    CATEGORY_LABELS,
    REQUIREMENTS,
    Requirement,
    get_requirement,
)

ANNUAL = Requirement(
    id="annual",
    category=RequirementCategory.FINANS,
    title="Annual reports",
    description="Signed annual reports",
    mandatory=True,
    requires_signature=True,
    min_years=3,
)
TAX = Requirement(
    id="tax",
    category=RequirementCategory.SKATT,
    title="Tax returns",
    description="",
    mandatory=True,
    min_years=3,
)
ARTICLES = Requirement(
    id="articles",
    category=RequirementCategory.JURIDIK,
    title="Articles of association",
    description="",
    mandatory=True,
)
POLICIES = Requirement(
    id="policies",
    category=RequirementCategory.HR,
    title="Staff handbook",
    description="",
    mandatory=False,
)
CATALOG = (ANNUAL, TAX, ARTICLES, POLICIES)


def _doc(requirement_id: str, **kwargs) -> UploadedDocumentMeta:
    return UploadedDocumentMeta(requirement_id=requirement_id, **kwargs)


class TestPercentage:
    @pytest.mark.parametrize(
        "fulfilled,total,expected",
        [(0, 0, 100), (0, 3, 0), (1, 3, 33), (2, 3, 67), (3, 3, 100), (1, 2, 50), (1, 8, 13), (1, 200, 1)],
    )
    def test_rounds_half_up(self, fulfilled, total, expected):
        assert percentage(fulfilled, total) == expected


class TestEvaluateRequirement:
    def test_no_documents_is_missing(self):
        result = evaluate_requirement(ARTICLES, [_doc("other")])
        assert result.status == ReadinessStatus.MISSING
        assert result.matched == []

    def test_plain_upload(self):
        result = evaluate_requirement(ARTICLES, [_doc("articles")])
        assert result.status == ReadinessStatus.UPLOADED
        assert result.satisfied is True

    def test_verified_upload(self):
        docs = [_doc("articles", file_name="a.pdf"), _doc("articles", file_name="b.pdf", verified=True)]
        assert evaluate_requirement(ARTICLES, docs).status == ReadinessStatus.VERIFIED

    def test_min_years_counts_distinct_years(self):
        docs = [
            _doc("tax", period_year=2022),
            _doc("tax", period_year=2023),
            _doc("tax", period_year=2023, file_name="amended.pdf"),
        ]
        result = evaluate_requirement(TAX, docs)
        assert result.status == ReadinessStatus.INCOMPLETE
        assert result.issues == ["2 of 3 years covered"]

        result = evaluate_requirement(TAX, [*docs, _doc("tax", period_year=2024)])
        assert result.status == ReadinessStatus.UPLOADED
        assert result.issues == []

    def test_documents_without_year_do_not_count(self):
        result = evaluate_requirement(TAX, [_doc("tax"), _doc("tax")])
        assert result.issues == ["0 of 3 years covered"]

    def test_signature_and_years_both_reported(self):
        result = evaluate_requirement(ANNUAL, [_doc("annual", period_year=2023, signed=False)])
        assert result.status == ReadinessStatus.INCOMPLETE
        assert result.issues == ["signature missing", "1 of 3 years covered"]

    def test_one_signed_document_satisfies_signature(self):
        docs = [
            _doc("annual", period_year=y, signed=(y == 2024)) for y in (2022, 2023, 2024)
        ]
        assert evaluate_requirement(ANNUAL, docs).status == ReadinessStatus.UPLOADED

    def test_incomplete_wins_over_verified(self):
        docs = [_doc("annual", period_year=2024, signed=True, verified=True)]
        assert evaluate_requirement(ANNUAL, docs).status == ReadinessStatus.INCOMPLETE


class TestComputeReadiness:
    def test_empty_document_set(self):
        result = compute_readiness([], CATALOG)
        assert result.total_mandatory == 3
        assert result.fulfilled_mandatory == 0
        assert result.total_score == 0
        assert [g.requirement_id for g in result.gaps] == ["annual", "tax", "articles"]
        assert all(g.reason == MISSING_REASON for g in result.gaps)

    def test_optional_requirements_never_affect_score(self):
        with_optional = compute_readiness([_doc("policies")], CATALOG)
        without = compute_readiness([], CATALOG)
        assert with_optional.total_score == without.total_score
        assert with_optional.requirements[3].status == ReadinessStatus.UPLOADED

    def test_category_scores_cover_every_category_in_order(self):
        result = compute_readiness([_doc("articles")], CATALOG)
        assert [c.category for c in result.categories] == list(RequirementCategory)
        by_category = {c.category: c for c in result.categories}
        assert by_category[RequirementCategory.JURIDIK].score == 100
        assert by_category[RequirementCategory.FINANS].score == 0
        # no mandatory items in the category at all
        assert by_category[RequirementCategory.HR].total == 0
        assert by_category[RequirementCategory.HR].score == 100

    def test_gap_reason_lists_issues(self):
        result = compute_readiness(
            [_doc("tax", period_year=2022), _doc("tax", period_year=2023), _doc("articles")],
            CATALOG,
        )
        gaps = {g.requirement_id: g for g in result.gaps}
        assert gaps["tax"].status == ReadinessStatus.INCOMPLETE
        assert gaps["tax"].reason == "2 of 3 years covered"
        assert gaps["annual"].reason == MISSING_REASON
        assert "articles" not in gaps
        assert result.total_score == 33

    def test_fully_satisfied(self):
        docs = [_doc("articles")]
        docs += [_doc("tax", period_year=y) for y in (2021, 2022, 2023)]
        docs += [_doc("annual", period_year=y, signed=True) for y in (2021, 2022, 2023)]
        result = compute_readiness(docs, CATALOG)
        assert result.total_score == 100
        assert result.gaps == []

    def test_result_independent_of_document_order(self):
        docs = [_doc("tax", period_year=y, file_name=f"t{y}.pdf") for y in (2020, 2021, 2022)]
        docs += [_doc("annual", period_year=2022, signed=True, file_name="a.pdf"), _doc("articles")]
        expected = compute_readiness(docs, CATALOG).to_dict()
        rng = random.Random(7)
        for _ in range(10):
            shuffled = docs[:]
            rng.shuffle(shuffled)
            assert compute_readiness(shuffled, CATALOG).to_dict() == expected

    def test_signed_unknown_and_unsigned_do_not_depend_on_order(self):
        unknown = _doc("annual", period_year=2022, file_name="x.pdf", signed=None)
        unsigned = _doc("annual", period_year=2022, file_name="x.pdf", signed=False)
        assert (
            compute_readiness([unknown, unsigned], CATALOG).to_dict()
            == compute_readiness([unsigned, unknown], CATALOG).to_dict()
        )

    def test_category_breaks_ties(self):
        a = _doc("articles", file_name="x.pdf", category=RequirementCategory.JURIDIK)
        b = _doc("articles", file_name="x.pdf", category=None)
        assert [d.category for d in compute_readiness([a, b], CATALOG).requirements[2].matched] == [
            d.category for d in compute_readiness([b, a], CATALOG).requirements[2].matched
        ]

    def test_adding_a_document_never_moves_a_requirement_backward(self):
        rank = {
            ReadinessStatus.MISSING: 0,
            ReadinessStatus.INCOMPLETE: 1,
            ReadinessStatus.UPLOADED: 2,
            ReadinessStatus.VERIFIED: 3,
        }

        def statuses(docs):
            return {r.requirement.id: rank[r.status] for r in compute_readiness(docs, CATALOG).requirements}

        docs: list[UploadedDocumentMeta] = []
        previous = statuses(docs)
        previous_score = compute_readiness(docs, CATALOG).total_score
        seen: set[int] = set()
        for extra in [
            _doc("tax", period_year=2020),
            _doc("annual", period_year=2020, signed=False),
            _doc("policies"),
            _doc("tax", period_year=2021, verified=True),
            _doc("articles", verified=True),
            _doc("tax", period_year=2022),
            _doc("annual", period_year=2021, signed=True),
            _doc("policies", verified=True),
            _doc("annual", period_year=2022, verified=True),
            _doc("articles", signed=False),
        ]:
            docs.append(extra)
            current = statuses(docs)
            for requirement_id, before in previous.items():
                assert current[requirement_id] >= before, requirement_id
            score = compute_readiness(docs, CATALOG).total_score
            assert score >= previous_score
            seen.update(current.values())
            previous, previous_score = current, score

        assert seen == set(rank.values())
        assert previous == {"annual": 3, "tax": 3, "articles": 3, "policies": 3}
        assert previous_score == 100

    def test_unknown_requirement_ids_are_ignored(self):
        assert compute_readiness([_doc("nope")], CATALOG).to_dict() == compute_readiness([], CATALOG).to_dict()


class TestCatalog:
    def test_ids_are_unique(self):
        ids = [r.id for r in REQUIREMENTS]
        assert len(ids) == len(set(ids))

    def test_every_category_has_a_label(self):
        assert set(CATEGORY_LABELS) == set(RequirementCategory)

    def test_lookup(self):
        assert get_requirement("fin-arsredovisning").min_years == 3
        assert get_requirement("does-not-exist") is None

    def test_default_catalog_with_no_uploads(self):
        result = compute_readiness([])
        mandatory = [r for r in REQUIREMENTS if r.mandatory]
        assert result.total_mandatory == len(mandatory)
        assert result.total_score == 0
        assert [g.requirement_id for g in result.gaps] == [r.id for r in mandatory]
        operation = next(c for c in result.categories if c.category == RequirementCategory.OPERATION)
        assert (operation.total, operation.score) == (0, 100)
