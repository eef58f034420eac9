"""
Tests for text analysis, reasoning and concept exploration.
"""

import pytest
from unittest.mock import Mock, AsyncMock

from iqaes.errors import AnalysisError, ExplorationError, NotFoundError, ValidationError
from iqaes.explorer import (
    ConceptExplorer,
    ConceptStore,
    EntityExtractor,
    IntegratedAnalysis,
    PatternDetector,
    ReasoningEngine,
    RelationshipDiscoverer,
)
from iqaes.explorer.models import ConceptRecord, Entity, EntityReference, ExplorationStatus

SAMPLE_TEXT = "المؤمنون أهل التقوى وهم في الجنة يوم القيامة"


class TestPatternDetector:
    """Test Pattern Detector functionality."""

    @pytest.fixture
    def detector(self):
        return PatternDetector({"min_confidence": 0.7})

    @pytest.mark.asyncio
    async def test_conditional_sequence(self, detector):
        """Test detection of the condition-negation-result structure."""
        patterns = await detector.detect_patterns("إن لم تتب ثم تعمل صالحاً فلن تنجو.")

        conditional = [p for p in patterns if p.type == "conditional_sequence"]
        assert len(conditional) == 1
        assert conditional[0].confidence >= 0.7
        assert conditional[0].metadata["pattern_name"] == "إن/لم/ثم"
        assert conditional[0].metadata["pattern_type"] == "conditional_sequence"

    @pytest.mark.asyncio
    async def test_exclusivity_scores_above_conditional(self, detector):
        """Test that exclusivity carries a higher type bonus than the conditional structure."""
        conditional = await detector.detect_patterns("إن لم تتب ثم تعمل صالحاً فلن تنجو.")
        exclusivity = await detector.detect_patterns("وما أرسلناك إلا رحمة للعالمين.")

        conditional_confidence = next(p.confidence for p in conditional if p.type == "conditional_sequence")
        exclusivity_confidence = next(p.confidence for p in exclusivity if p.type == "exclusivity")

        assert exclusivity_confidence > conditional_confidence

    @pytest.mark.asyncio
    async def test_address_extracts_addressee(self, detector):
        """Test the vocative address pattern."""
        patterns = await detector.detect_patterns("يا أيها الناس اتقوا ربكم.")

        address = [p for p in patterns if p.type == "address"]
        assert len(address) == 1
        assert address[0].metadata["addressee"] == "الناس"
        assert address[0].start == 0

    @pytest.mark.asyncio
    async def test_repetition(self, detector):
        """Test detection of immediately repeated words."""
        patterns = await detector.detect_patterns("كلا كلا إذا دكت الأرض دكا دكا")

        repeated = sorted(p.metadata["repeated_word"] for p in patterns if p.type == "repetition")
        assert repeated == sorted(["كلا", "دكا"])
        assert all(p.metadata["count"] == 2 for p in patterns if p.type == "repetition")

    @pytest.mark.asyncio
    async def test_threshold_is_monotonic(self, detector):
        """Test that raising min_confidence never returns more patterns."""
        text = "يا أيها الناس اتقوا ربكم. وما أرسلناك إلا رحمة للعالمين. إن لم تتب ثم تعمل صالحاً. كلا كلا"

        counts = []
        for threshold in [0.0, 0.7, 0.8, 0.85, 0.9, 1.0]:
            patterns = await detector.detect_patterns(text, {"min_confidence": threshold})
            assert all(p.confidence >= threshold for p in patterns)
            counts.append(len(patterns))

        assert counts == sorted(counts, reverse=True)
        assert counts[0] > counts[-1]

    @pytest.mark.asyncio
    async def test_semantic_patterns_are_opt_in(self, detector):
        """Test that question/answer patterns need include_semantic_patterns."""
        text = "أين الجنة؟ إنها للمتقين."

        without = await detector.detect_patterns(text)
        assert not [p for p in without if p.type == "question_answer"]

        with_semantic = await detector.detect_patterns(text, {"include_semantic_patterns": True})
        qa = [p for p in with_semantic if p.type == "question_answer"]
        assert len(qa) == 1
        assert qa[0].confidence == pytest.approx(0.85)
        assert qa[0].metadata["question"] == "أين الجنة؟"
        assert qa[0].metadata["answer"] == "إنها للمتقين."

    @pytest.mark.asyncio
    async def test_question_answers_in_sequence(self, detector):
        """Test that every question/answer sentence is found with its own span."""
        text = "ما الصبر؟ هو الثبات. كلام آخر! ومن المتقون؟ هم أهل الجنة."

        patterns = await detector.detect_patterns(text, {"include_semantic_patterns": True})

        qa = [p for p in patterns if p.type == "question_answer"]
        assert [p.metadata["question"] for p in qa] == ["ما الصبر؟", "ومن المتقون؟"]
        assert [p.metadata["answer"] for p in qa] == ["هو الثبات.", "هم أهل الجنة."]
        assert text[qa[1].start:qa[1].end] == qa[1].text

    @pytest.mark.asyncio
    async def test_question_without_full_stop_answer(self, detector):
        text = "أين الجنة؟ ولماذا؟ إنها للمتقين"

        patterns = await detector.detect_patterns(text, {"include_semantic_patterns": True})

        assert not [p for p in patterns if p.type == "question_answer"]

    @pytest.mark.asyncio
    async def test_long_text_without_questions(self, detector):
        """Test that a long unpunctuated text is scanned without question/answer matches."""
        text = "كلمة " * 20000

        patterns = await detector.detect_patterns(text, {"include_semantic_patterns": True})

        assert not [p for p in patterns if p.type == "question_answer"]

    @pytest.mark.asyncio
    async def test_theme_repetition(self, detector):
        """Test theme detection for a term repeated at short distances."""
        text = "رحمة ربك رحمة واسعة ومن رحمة الله"

        patterns = await detector.detect_patterns(text, {"include_semantic_patterns": True})

        themes = [p for p in patterns if p.type == "theme_repetition"]
        assert len(themes) == 1
        assert themes[0].metadata["theme"] == "رحمة"
        assert themes[0].metadata["occurrences"] == 3
        assert themes[0].confidence == pytest.approx(0.9)

    @pytest.mark.asyncio
    async def test_theme_needs_minimum_occurrences(self, detector):
        """Test that two occurrences are not a theme."""
        patterns = await detector.detect_patterns("رحمة ربك رحمة واسعة", {"include_semantic_patterns": True})
        assert not [p for p in patterns if p.type == "theme_repetition"]

    @pytest.mark.asyncio
    async def test_theme_confidence_is_uncapped(self, detector):
        """Test that six occurrences push the theme score past 1.0."""
        text = " ".join(["هداية"] * 6)

        patterns = await detector.detect_patterns(text, {"include_semantic_patterns": True})

        theme = next(p for p in patterns if p.type == "theme_repetition")
        assert theme.confidence == pytest.approx(1.05)

    def test_calculate_pattern_confidence(self):
        """Test the confidence formula."""
        assert PatternDetector.calculate_pattern_confidence("short", "repetition") == pytest.approx(0.7)
        assert PatternDetector.calculate_pattern_confidence("x" * 21, "repetition") == pytest.approx(0.8)
        assert PatternDetector.calculate_pattern_confidence("x" * 21, "exclusivity") == pytest.approx(0.95)

    def test_calculate_average_distance(self):
        """Test the average gap between positions."""
        assert PatternDetector.calculate_average_distance([5]) == 0.0
        assert PatternDetector.calculate_average_distance([0, 10, 30]) == pytest.approx(15.0)

    @pytest.mark.asyncio
    async def test_pattern_to_dict(self, detector):
        """Test that serialized patterns nest their position."""
        patterns = await detector.detect_patterns("يا أيها الناس اتقوا ربكم.")
        data = patterns[0].to_dict()

        assert data["position"] == {"start": patterns[0].start, "end": patterns[0].end}


class TestEntityExtractor:
    """Test Entity Extractor functionality."""

    @pytest.fixture
    def extractor(self):
        return EntityExtractor({})

    @pytest.mark.asyncio
    async def test_extract_entities(self, extractor):
        """Test dictionary matching in dictionary order."""
        entities = await extractor.extract_entities(SAMPLE_TEXT)

        assert [e.name for e in entities] == ["المؤمنون", "الجنة", "التقوى", "القيامة"]
        assert [e.type for e in entities] == ["person", "place", "attribute", "event"]

    @pytest.mark.asyncio
    async def test_references(self, extractor):
        """Test that every occurrence is recorded as a reference."""
        entities = await extractor.extract_entities("الصبر خير والصبر جميل و الصبر مفتاح")

        patience = entities[0]
        assert patience.name == "الصبر"
        assert len(patience.references) == 2
        assert patience.references[0].start == 0
        assert patience.references[0].source == "text_match"

    @pytest.mark.asyncio
    async def test_whole_word_matching(self, extractor):
        """Test that prefixed words are not matched."""
        entities = await extractor.extract_entities("والجنة بالتقوى")
        assert entities == []

    @pytest.mark.asyncio
    async def test_attributes_are_copied(self, extractor):
        """Test that entities do not share attribute dicts with the term table."""
        entities = await extractor.extract_entities("الجنة")
        entities[0].attributes["category"] = "changed"

        fresh = await extractor.extract_entities("الجنة")
        assert fresh[0].attributes["category"] == "آخرة"


class TestRelationshipDiscoverer:
    """Test Relationship Discoverer functionality."""

    @pytest.fixture
    def discoverer(self):
        return RelationshipDiscoverer({})

    @pytest.mark.asyncio
    async def test_discover_relationships(self, discoverer):
        """Test the proximity, attribute and semantic passes."""
        entities = await EntityExtractor().extract_entities(SAMPLE_TEXT)
        relationships = await discoverer.discover_relationships(entities, SAMPLE_TEXT, {"min_confidence": 0.0})
        by_name = {e.id: e.name for e in entities}

        types = {r.type for r in relationships}
        assert {"co_occurs_with", "has_attribute", "occurs_in"} <= types

        has_attribute = [r for r in relationships if r.type == "has_attribute"]
        assert [(by_name[r.source_entity_id], by_name[r.target_entity_id]) for r in has_attribute] == [
            ("المؤمنون", "التقوى")
        ]
        assert has_attribute[0].confidence == pytest.approx(0.75)

        occurs_in = [r for r in relationships if r.type == "occurs_in"]
        assert [(by_name[r.source_entity_id], by_name[r.target_entity_id]) for r in occurs_in] == [
            ("القيامة", "الجنة")
        ]
        assert occurs_in[0].confidence == pytest.approx(0.7)

    @pytest.mark.asyncio
    async def test_min_confidence_filter(self, discoverer):
        """Test that results respect the threshold."""
        entities = await EntityExtractor().extract_entities(SAMPLE_TEXT)
        relationships = await discoverer.discover_relationships(entities, SAMPLE_TEXT, {"min_confidence": 0.74})

        assert relationships
        assert all(r.confidence >= 0.74 for r in relationships)
        assert not [r for r in relationships if r.type == "occurs_in"]

    @pytest.mark.asyncio
    async def test_no_entities(self, discoverer):
        assert await discoverer.discover_relationships([], "", {}) == []

    def test_calculate_proximity(self):
        """Test proximity from the smallest reference gap."""
        a = Entity("a", "person", "a", {}, [EntityReference("a", "text_match", 0, 5)])
        b = Entity("b", "place", "b", {}, [EntityReference("b", "text_match", 15, 20)])
        far = Entity("c", "place", "c", {}, [EntityReference("c", "text_match", 500, 505)])
        empty = Entity("d", "place", "d", {}, [])

        assert RelationshipDiscoverer.calculate_proximity(a, b) == pytest.approx(0.9)
        assert RelationshipDiscoverer.calculate_proximity(a, far) == 0.0
        assert RelationshipDiscoverer.calculate_proximity(a, empty) == 0.0

    def test_calculate_semantic_similarity(self):
        """Test attribute overlap over the smaller attribute set."""
        a = Entity("a", "event", "a", {"category": "آخرة"})
        b = Entity("b", "place", "b", {"category": "آخرة", "function": "ثواب"})
        c = Entity("c", "place", "c", {"category": "دنيا"})

        assert RelationshipDiscoverer.calculate_semantic_similarity(a, b) == pytest.approx(1.0)
        assert RelationshipDiscoverer.calculate_semantic_similarity(a, c) == 0.0
        assert RelationshipDiscoverer.calculate_semantic_similarity(a, Entity("d", "x", "d", {})) == 0.0

    def test_check_attribute_applicability(self):
        person = Entity("p", "person", "p", {"category": "جماعة"})
        value = Entity("v", "attribute", "v", {"category": "قيمة"})
        trait = Entity("t", "attribute", "t", {"category": "صفة"})

        assert RelationshipDiscoverer.check_attribute_applicability(person, value)
        assert not RelationshipDiscoverer.check_attribute_applicability(person, trait)

        concept = Entity("c", "concept", "c", {"category": "قيمة"})
        assert RelationshipDiscoverer.check_attribute_applicability(concept, value)
        assert not RelationshipDiscoverer.check_attribute_applicability(concept, trait)


class TestIntegratedAnalysis:
    """Test Integrated Analysis functionality."""

    @pytest.fixture
    def analysis(self):
        return IntegratedAnalysis({"patterns": {"min_confidence": 0.7}, "analysis": {"min_confidence": 0.7}})

    @pytest.mark.asyncio
    async def test_analyze_text(self, analysis):
        """Test a full analysis pass."""
        result = await analysis.analyze_text(SAMPLE_TEXT, {"min_confidence": 0.5})

        assert result.text == SAMPLE_TEXT
        assert [e.name for e in result.entities] == ["المؤمنون", "الجنة", "التقوى", "القيامة"]
        assert result.relationships
        assert set(result.metadata) == {"timestamp", "duration_ms", "parameters"}
        assert result.metadata["parameters"] == {"min_confidence": 0.5}
        assert analysis.get_analysis(result.id) is result

    @pytest.mark.asyncio
    async def test_result_to_dict(self, analysis):
        result = await analysis.analyze_text("يا أيها الناس اتقوا ربكم.")
        data = result.to_dict()

        assert data["id"] == result.id
        assert data["patterns"][0]["type"] == "address"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("text", ["", "   ", None, 42])
    async def test_rejects_invalid_text(self, analysis, text):
        with pytest.raises(ValidationError):
            await analysis.analyze_text(text)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("parameters", ["fast", {"min_confidence": 1.5}, {"min_confidence": -0.1},
                                            {"min_confidence": "high"}, {"min_confidence": True}])
    async def test_rejects_invalid_parameters(self, analysis, parameters):
        with pytest.raises(ValidationError):
            await analysis.analyze_text(SAMPLE_TEXT, parameters)

    @pytest.mark.asyncio
    async def test_null_threshold_uses_default(self, analysis):
        """Test that min_confidence=None falls back to the configured threshold."""
        text = "يا أيها الناس اتقوا ربكم."

        result = await analysis.analyze_text(text, {"min_confidence": None})

        assert [p.type for p in result.patterns] == ["address"]
        assert result.metadata["parameters"] == {}

    @pytest.mark.asyncio
    async def test_stage_failure_is_wrapped(self):
        """Test that a failing stage becomes an AnalysisError with no stored result."""
        detector = Mock(spec=PatternDetector)
        detector.detect_patterns = AsyncMock(side_effect=RuntimeError("boom"))
        analysis = IntegratedAnalysis({}, pattern_detector=detector)

        with pytest.raises(AnalysisError) as exc_info:
            await analysis.analyze_text(SAMPLE_TEXT)

        assert str(exc_info.value) == "Analysis failed: boom"
        assert isinstance(exc_info.value.__cause__, RuntimeError)
        assert analysis.analyses == {}

    def test_get_analysis_methods(self, analysis):
        assert "integrated" in [m["id"] for m in analysis.get_analysis_methods()]


class TestReasoningEngine:
    """Test Reasoning Engine functionality."""

    @pytest.fixture
    def engine(self):
        return ReasoningEngine({})

    @pytest.mark.asyncio
    async def test_similar_concepts(self, engine):
        """Test type/category matching merged into one relation plus the transitivity rule."""
        relations = await engine.discover_relations("concept-1", "concept-2")

        assert [r.type for r in relations] == ["similar_to", "similar_to"]
        assert relations[0].confidence == pytest.approx(0.8)
        assert [e.source for e in relations[0].evidence] == ["type_matching", "category_matching"]
        assert relations[1].confidence == pytest.approx(0.7)
        assert relations[1].evidence[0].source == "inference_rule"

    @pytest.mark.asyncio
    async def test_concept_to_attribute(self, engine):
        """Test attribute inheritance and both implication sources."""
        relations = await engine.discover_relations("concept-1", "concept-3")

        assert [(r.type, round(r.confidence, 2)) for r in relations] == [
            ("has_attribute", 0.8),
            ("implies", 0.75),
            ("implies", 0.9)
        ]

    @pytest.mark.asyncio
    async def test_min_confidence(self, engine):
        relations = await engine.discover_relations("concept-1", "concept-3", {"min_confidence": 0.85})
        assert [r.type for r in relations] == ["implies"]
        assert relations[0].evidence[0].source == "explicit_implication"

    @pytest.mark.asyncio
    async def test_zero_min_confidence_is_honored(self, engine):
        """Test that a zero threshold keeps the low-confidence type match."""
        relations = await engine.discover_relations("concept-1", "concept-5", {"min_confidence": 0.0})
        assert [(r.type, r.confidence) for r in relations] == [("similar_to", 0.6)]

    @pytest.mark.asyncio
    async def test_unknown_item(self, engine):
        with pytest.raises(NotFoundError) as exc_info:
            await engine.discover_relations("concept-1", "missing")
        assert exc_info.value.item_id == "missing"

    @pytest.mark.asyncio
    async def test_infer_knowledge(self, engine):
        """Test the flat inference sweep from one concept."""
        inferences = await engine.infer_knowledge("concept-1")

        assert len(inferences) == 8
        assert all(i.source_id == "concept-1" for i in inferences)
        assert all(i.type == "inferred_relation" for i in inferences)
        assert all(i.confidence >= 0.7 for i in inferences)

        per_target = {}
        for inference in inferences:
            per_target[inference.target_id] = per_target.get(inference.target_id, 0) + 1
        assert per_target == {"concept-2": 2, "concept-3": 3, "concept-4": 3}

    @pytest.mark.asyncio
    async def test_infer_unknown_concept(self, engine):
        with pytest.raises(NotFoundError):
            await engine.infer_knowledge("missing")

    def test_knowledge_items(self, engine):
        assert len(engine.list_knowledge_items()) == 5
        assert engine.get_knowledge_item("concept-2").name == "إيمان"
        assert engine.get_knowledge_item("missing") is None
        assert "implies" in engine.get_relation_types()


class TestConceptStore:
    """Test Concept Store functionality."""

    def test_seeded_in_memory(self):
        store = ConceptStore()
        assert [c.id for c in store.get_all_concepts()] == ["concept-1", "concept-2", "concept-3"]

    def test_persistence(self, tmp_path):
        """Test that concepts survive a reload."""
        store = ConceptStore(tmp_path)
        store.add_concept(ConceptRecord(id="concept-4", name="رحمة", type="قيمة"))

        reloaded = ConceptStore(tmp_path)
        assert len(reloaded) == 4
        assert reloaded.get_concept("concept-4").name == "رحمة"

    def test_recovers_from_corrupted_file(self, tmp_path):
        (tmp_path / "concepts.json").write_text("not json", encoding="utf-8")

        store = ConceptStore(tmp_path)
        assert len(store) == 3

    def test_export_import(self, tmp_path):
        """Test that export followed by import reproduces the concepts."""
        store = ConceptStore()
        export_file = tmp_path / "concepts_export.json"
        store.export_concepts(str(export_file))

        imported = ConceptStore(seed=False)
        imported.import_concepts(str(export_file))

        assert [c.to_dict() for c in imported.get_all_concepts()] == [c.to_dict() for c in store.get_all_concepts()]


class TestConceptExplorer:
    """Test Concept Explorer functionality."""

    @pytest.fixture
    def explorer(self):
        return ConceptExplorer({}, concept_store=ConceptStore())

    @pytest.mark.asyncio
    async def test_explore_depth_two(self, explorer):
        """Test recursion into related concepts."""
        exploration = await explorer.explore_concept("تقوى", {"max_depth": 2})

        assert exploration.status == ExplorationStatus.COMPLETED
        assert [r.id for r in exploration.results] == ["concept-1", "concept-2", "concept-3"]
        assert exploration.results[0].references == ["concept-2", "concept-3"]

    @pytest.mark.asyncio
    async def test_explore_depth_one(self, explorer):
        """Test that depth one does not recurse."""
        exploration = await explorer.explore_concept("تقوى", {"max_depth": 1})
        assert [r.id for r in exploration.results] == ["concept-1"]

    @pytest.mark.asyncio
    async def test_terminates_on_cycles(self, explorer):
        """Test that mutually related concepts are visited once."""
        exploration = await explorer.explore_concept("تقوى", {"max_depth": 10})
        assert [r.id for r in exploration.results] == ["concept-1", "concept-2", "concept-3"]

    @pytest.mark.asyncio
    async def test_unknown_concept_is_materialized(self, explorer):
        """Test that exploring an unknown name adds it to the store."""
        exploration = await explorer.explore_concept("رحمة")

        assert len(exploration.results) == 1
        assert exploration.results[0].type == "unknown"
        assert len(explorer.concept_store) == 4
        assert explorer.concept_store.find_by_name("رحمة")[0].id == exploration.results[0].id

    @pytest.mark.asyncio
    async def test_empty_concept(self, explorer):
        with pytest.raises(ValidationError):
            await explorer.explore_concept("  ")

    @pytest.mark.asyncio
    async def test_failure_marks_record(self, explorer):
        """Test that a failing traversal leaves a failed record behind."""
        explorer.concept_store.find_by_name = Mock(side_effect=RuntimeError("disk"))

        with pytest.raises(ExplorationError) as exc_info:
            await explorer.explore_concept("تقوى")

        assert str(exc_info.value) == "Exploration failed: disk"
        records = explorer.list_explorations()
        assert len(records) == 1
        assert records[0].status == ExplorationStatus.FAILED

    @pytest.mark.asyncio
    async def test_get_exploration(self, explorer):
        exploration = await explorer.explore_concept("صبر")

        assert explorer.get_exploration(exploration.id) is exploration
        assert explorer.get_exploration("missing") is None
        assert exploration.to_dict()["status"] == "completed"

    def test_get_exploration_methods(self, explorer):
        assert [m["id"] for m in explorer.get_exploration_methods()] == ["systematic", "pattern", "reasoning"]
