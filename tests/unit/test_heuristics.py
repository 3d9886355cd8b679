"""
Unit tests for keyword heuristics.
"""

import pytest


class TestInferType:
    """Tests for type inference."""

    @pytest.mark.parametrize("text,expected", [
        ("Competitor announces acquisition", "competitor"),
        ("New compliance regulation for banks", "regulatory"),
        ("AI adoption keeps growing", "trend"),
        ("Market sentiment turns cautious", "market_sentiment"),
        ("Rust compiler release notes", "technical"),
    ])
    def test_rules(self, text, expected):
        from trenddit.intelligence.processing.heuristics import infer_type

        assert infer_type({"title": text}).value == expected

    def test_rule_order(self):
        """Competitor keywords win over trend keywords."""
        from trenddit.intelligence.processing.heuristics import infer_type

        assert infer_type("AI acquisition").value == "competitor"

    def test_word_boundaries(self):
        """'ai' inside 'said' is not a match."""
        from trenddit.intelligence.processing.heuristics import infer_type

        assert infer_type({"title": "She said the release was delayed"}).value == "technical"

    @pytest.mark.parametrize("text,expected", [
        ("Competitors announce acquisitions amid new regulations", "competitor"),
        ("Banks tighten compliance as regulations multiply", "regulatory"),
        ("Three trends shaping enterprise software", "trend"),
        ("Markets shrug off earnings", "market_sentiment"),
    ])
    def test_inflected_keywords(self, text, expected):
        """Plural and inflected keywords still classify."""
        from trenddit.intelligence.processing.heuristics import infer_type

        assert infer_type({"title": text}).value == expected

    def test_inflection_does_not_widen_short_keywords(self):
        """'ai' does not fire inside 'aid' or 'said'."""
        from trenddit.intelligence.processing.heuristics import infer_type

        assert infer_type({"title": "Foreign aid package said to pass"}).value == "technical"


class TestSentiment:
    """Tests for keyword sentiment."""

    def test_positive(self):
        from trenddit.intelligence.processing.heuristics import analyze_sentiment

        assert analyze_sentiment("great quarter with strong growth").value == "positive"

    def test_negative(self):
        from trenddit.intelligence.processing.heuristics import analyze_sentiment

        assert analyze_sentiment("sales decline adds risk").value == "negative"

    def test_inflected_negative(self):
        from trenddit.intelligence.processing.heuristics import analyze_sentiment

        assert analyze_sentiment({"title": "Risks mount as revenues see declines and failures"}).value == "negative"
        assert analyze_sentiment("shipments declined").value == "negative"

    def test_inflected_positive(self):
        from trenddit.intelligence.processing.heuristics import analyze_sentiment

        assert analyze_sentiment("record successes across regions").value == "positive"

    def test_tie_is_neutral(self):
        from trenddit.intelligence.processing.heuristics import analyze_sentiment

        assert analyze_sentiment("growth with some risk").value == "neutral"
        assert analyze_sentiment("nothing to see").value == "neutral"


class TestExtraction:
    """Tests for entity, tag, title and summary extraction."""

    def test_entities(self):
        from trenddit.intelligence.processing.heuristics import extract_entities

        entities = extract_entities("OpenAI and Google partner on machine learning")
        assert entities == ["openai", "google", "machine learning"]

    def test_tags(self):
        from trenddit.intelligence.processing.heuristics import extract_tags

        assert extract_tags({"body": "AI robotics and automation"}) == ["ai", "robotics", "automation"]

    def test_title_fields(self):
        from trenddit.intelligence.processing.heuristics import extract_title

        assert extract_title({"title": "  Plain title "}) == "Plain title"
        assert extract_title({"title": {"rendered": "WordPress title"}}) == "WordPress title"
        assert extract_title({"headline": "Headline"}) == "Headline"
        assert extract_title({}) == "Untitled Intelligence"
        assert extract_title(42) == "Untitled Intelligence"

    def test_summary_fields(self):
        from trenddit.intelligence.processing.heuristics import extract_summary

        assert extract_summary({"selftext": "Reddit body"}) == "Reddit body"
        assert extract_summary({"description": "Feed description"}) == "Feed description"
        assert extract_summary([1, 2]) == "No summary available"

    def test_summary_from_content_truncated(self):
        from trenddit.intelligence.processing.heuristics import extract_summary

        summary = extract_summary({"content": {"rendered": "x" * 300}})
        assert summary == "x" * 200


class TestImpactScore:
    """Tests for keyword impact scoring."""

    def test_base_score(self):
        from trenddit.intelligence.processing.heuristics import calculate_impact_score

        assert calculate_impact_score("quiet week", 1.0) == 5

    def test_keyword_boosts(self):
        from trenddit.intelligence.processing.heuristics import calculate_impact_score

        assert calculate_impact_score("breakthrough with new funding", 1.0) == 10

    def test_capped_at_ten(self):
        from trenddit.intelligence.processing.heuristics import calculate_impact_score

        text = "revolutionary acquisition triggers policy review"
        assert calculate_impact_score(text, 1.0) == 10

    def test_inflected_boosts(self):
        from trenddit.intelligence.processing.heuristics import calculate_impact_score

        # 5 + 3 + 2 + 2
        assert calculate_impact_score("breakthroughs, acquisitions and regulations", 1.0) == 10
        assert calculate_impact_score("two acquisitions", 1.0) == 7

    def test_scaled_by_reliability(self):
        from trenddit.intelligence.processing.heuristics import calculate_impact_score

        # (5 + 2 + 2) * 0.7 = 6.3
        assert calculate_impact_score("acquisition under regulation", 0.7) == 6

    def test_floor_of_one(self):
        from trenddit.intelligence.processing.heuristics import calculate_impact_score

        assert calculate_impact_score("quiet week", 0.1) == 1
