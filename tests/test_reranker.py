"""
Tests for execution/legalbot/reranker.py

Covers: query term extraction, keyword/heading/lexicon boosts, score cap,
        stable ordering, threshold filtering and Jaccard deduplication.
"""

import pytest

from tests.conftest import make_result


@pytest.fixture
def spanish_reranker():
    from execution.legalbot.language_config import LanguageConfig
    from execution.legalbot.reranker import KeywordReranker
    return KeywordReranker(language_config=LanguageConfig.for_language("es"))


# ---------------------------------------------------------------------------
# Term extraction
# ---------------------------------------------------------------------------

class TestExtractKeyTerms:

    def test_spanish_query(self):
        from execution.legalbot.reranker import extract_key_terms
        assert extract_key_terms("¿Puedo subarrendar mi piso?", "es") == ["subarrendar", "piso"]

    def test_english_query(self):
        from execution.legalbot.reranker import extract_key_terms
        assert extract_key_terms("Can I sublet my flat?", "en") == ["sublet", "flat"]

    def test_punctuation_splits_terms(self):
        from execution.legalbot.reranker import extract_key_terms
        assert extract_key_terms("obras,reparaciones", "es") == ["obras", "reparaciones"]

    def test_repeated_terms_kept_once(self):
        from execution.legalbot.reranker import extract_key_terms
        assert extract_key_terms("obras obras OBRAS", "es") == ["obras"]

    def test_short_terms_dropped(self):
        from execution.legalbot.reranker import extract_key_terms
        assert extract_key_terms("ab abc", "en") == ["abc"]

    def test_empty_query(self):
        from execution.legalbot.reranker import extract_key_terms
        assert extract_key_terms("", "es") == []
        assert extract_key_terms("¿?", "es") == []


# ---------------------------------------------------------------------------
# Rerank
# ---------------------------------------------------------------------------

class TestRerank:

    def test_lexicon_boost_applied(self, spanish_reranker):
        """Body match (+0.10) plus the LAU Artículo 8 lexicon entry (+0.15)."""
        target = make_result("LAU-art-8", 0.50, text="Se podrá subarrendar con consentimiento.",
                             label="Artículo 8", heading="Cesión del contrato y subarriendo.")
        other = make_result("LAU-art-9", 0.60, text="La duración será pactada.",
                            label="Artículo 9", heading="Plazo mínimo.")

        reranked = spanish_reranker.rerank([other, target], "¿Puedo subarrendar?")

        assert [r.id for r in reranked] == ["LAU-art-8", "LAU-art-9"]
        assert reranked[0].score == pytest.approx(0.75)
        assert reranked[1].score == pytest.approx(0.60)

    def test_heading_boost(self, spanish_reranker):
        result = make_result("CC-art-1", 0.40, group="CC", text="Sin coincidencias.",
                             label="Artículo 1", heading="Fianza")
        reranked = spanish_reranker.rerank([result], "fianza")
        assert reranked[0].score == pytest.approx(0.55)

    def test_body_and_heading_both_count(self, spanish_reranker):
        result = make_result("CC-art-1", 0.40, group="CC", text="La fianza se devuelve.",
                             label="Artículo 1", heading="Fianza")
        reranked = spanish_reranker.rerank([result], "fianza")
        assert reranked[0].score == pytest.approx(0.65)

    def test_lexicon_requires_exact_label(self, spanish_reranker):
        result = make_result("LAU-art-80", 0.50, text="Otro texto.", label="Artículo 80")
        reranked = spanish_reranker.rerank([result], "subarrendar")
        assert reranked[0].score == pytest.approx(0.50)

    def test_lexicon_requires_matching_group(self, spanish_reranker):
        result = make_result("LPH-art-8", 0.50, group="LPH", text="Otro texto.", label="Artículo 8")
        reranked = spanish_reranker.rerank([result], "subarrendar")
        assert reranked[0].score == pytest.approx(0.50)

    def test_multiple_lexicon_targets(self, spanish_reranker):
        art21 = make_result("LAU-art-21", 0.50, text="Conservación de la vivienda.", label="Artículo 21")
        art22 = make_result("LAU-art-22", 0.50, text="Mejoras.", label="Artículo 22")
        reranked = {r.id: r.score for r in spanish_reranker.rerank([art21, art22], "reparaciones")}
        assert reranked["LAU-art-21"] == pytest.approx(0.62)
        assert reranked["LAU-art-22"] == pytest.approx(0.60)

    def test_score_capped_at_one(self, spanish_reranker):
        result = make_result("LAU-art-8", 0.95, text="subarrendar subarriendo",
                             label="Artículo 8", heading="subarrendar")
        reranked = spanish_reranker.rerank([result], "subarrendar subarriendo")
        assert reranked[0].score == 1.0

    def test_ties_keep_input_order(self, spanish_reranker):
        first = make_result("LAU-art-1", 0.70, text="nada")
        second = make_result("LAU-art-2", 0.70, text="nada")
        reranked = spanish_reranker.rerank([first, second], "pregunta sin coincidencias")
        assert [r.id for r in reranked] == ["LAU-art-1", "LAU-art-2"]

    def test_stopword_only_query_changes_nothing(self, spanish_reranker):
        results = [make_result("LAU-art-1", 0.8), make_result("LAU-art-2", 0.7)]
        reranked = spanish_reranker.rerank(results, "¿Qué es la de los?")
        assert [(r.id, r.score) for r in reranked] == [("LAU-art-1", 0.8), ("LAU-art-2", 0.7)]

    def test_inputs_not_mutated(self, spanish_reranker):
        result = make_result("LAU-art-8", 0.50, text="subarrendar", label="Artículo 8")
        spanish_reranker.rerank([result], "subarrendar")
        assert result.score == 0.50

    def test_empty_results(self, spanish_reranker):
        assert spanish_reranker.rerank([], "subarrendar") == []

    def test_custom_boosts(self):
        from execution.legalbot.reranker import KeywordReranker, RerankConfig
        reranker = KeywordReranker(config=RerankConfig(term_boost=0.2, heading_boost=0.0))
        result = make_result("X-art-1", 0.1, group="X", text="notice period", label="Article 1")
        assert reranker.rerank([result], "notice")[0].score == pytest.approx(0.3)

    def test_english_lexicon(self):
        from execution.legalbot.reranker import KeywordReranker
        result = make_result("LAU-art-8", 0.5, text="Unrelated.", label="Article 8")
        assert KeywordReranker().rerank([result], "Can I sublet?")[0].score == pytest.approx(0.65)


# ---------------------------------------------------------------------------
# Threshold
# ---------------------------------------------------------------------------

class TestFilterByThreshold:

    def test_equal_score_passes(self):
        from execution.legalbot.reranker import filter_by_threshold
        results = [make_result("A-art-1", 0.7), make_result("A-art-2", 0.69), make_result("A-art-3", 0.9)]
        assert [r.id for r in filter_by_threshold(results, 0.7)] == ["A-art-1", "A-art-3"]

    def test_order_preserved(self):
        from execution.legalbot.reranker import filter_by_threshold
        results = [make_result("A-art-1", 0.2), make_result("A-art-2", 0.9), make_result("A-art-3", 0.5)]
        assert [r.id for r in filter_by_threshold(results, 0.0)] == ["A-art-1", "A-art-2", "A-art-3"]

    def test_nothing_passes(self):
        from execution.legalbot.reranker import filter_by_threshold
        assert filter_by_threshold([make_result("A-art-1", 0.3)], 0.7) == []


# ---------------------------------------------------------------------------
# Deduplication
# ---------------------------------------------------------------------------

class TestJaccardSimilarity:

    def test_identical(self):
        from execution.legalbot.reranker import jaccard_similarity
        assert jaccard_similarity("el plazo mínimo", "El plazo mínimo") == 1.0

    def test_disjoint(self):
        from execution.legalbot.reranker import jaccard_similarity
        assert jaccard_similarity("uno dos", "tres cuatro") == 0.0

    def test_partial(self):
        from execution.legalbot.reranker import jaccard_similarity
        assert jaccard_similarity("a b c d", "a b c d e") == pytest.approx(0.8)

    def test_both_empty(self):
        from execution.legalbot.reranker import jaccard_similarity
        assert jaccard_similarity("", "  ") == 1.0


class TestDeduplicateResults:

    def test_identical_texts_collapse(self):
        from execution.legalbot.reranker import deduplicate_results
        results = [
            make_result("A-art-1", 0.9, text="mismo texto legal"),
            make_result("A-art-2", 0.8, text="mismo texto legal"),
            make_result("A-art-3", 0.7, text="otro contenido distinto"),
        ]
        assert [r.id for r in deduplicate_results(results)] == ["A-art-1", "A-art-3"]

    def test_overlap_at_limit_is_removed(self):
        from execution.legalbot.reranker import deduplicate_results
        results = [
            make_result("A-art-1", 0.9, text="a b c d e"),
            make_result("A-art-2", 0.8, text="a b c d"),
        ]
        assert [r.id for r in deduplicate_results(results, max_overlap=0.8)] == ["A-art-1"]

    def test_overlap_below_limit_is_kept(self):
        from execution.legalbot.reranker import deduplicate_results
        results = [
            make_result("A-art-1", 0.9, text="a b c d e"),
            make_result("A-art-2", 0.8, text="a b c d"),
        ]
        assert len(deduplicate_results(results, max_overlap=0.81)) == 2

    def test_no_kept_pair_reaches_limit(self):
        from execution.legalbot.reranker import deduplicate_results, jaccard_similarity
        texts = ["a b c d", "a b c d e", "a b x y", "a b x y z", "p q r s", "a b c d e f"]
        results = [make_result(f"A-art-{i}", 0.5, text=t) for i, t in enumerate(texts)]

        kept = deduplicate_results(results, max_overlap=0.6)

        for i, left in enumerate(kept):
            for right in kept[i + 1:]:
                assert jaccard_similarity(left.text, right.text) < 0.6

    def test_empty(self):
        from execution.legalbot.reranker import deduplicate_results
        assert deduplicate_results([]) == []
