"""Quality Matrix - Heuristic content-quality scoring for generated questions.

Every question is scored 0-100 on six criteria. The first three are critical:
they weigh more in the overall score and a question cannot pass while any of
them fails.
"""

import logging
import math
import re
from collections.abc import Iterable
from typing import Any

from quizgen.config.settings import QualitySettings
from quizgen.models.quality import QualityCheckResult, QuestionQualityResult, QuizQualityReport
from quizgen.models.quiz import CanonicalQuiz, GenerationRequest

logger = logging.getLogger(__name__)

CONFUSING_PATTERNS = [
    re.compile(r"which of the following is not not", re.IGNORECASE),
    re.compile(r"true or false.*true or false", re.IGNORECASE),
    re.compile(r"correct.*incorrect.*correct", re.IGNORECASE),
]

GRAMMAR_RULES = [
    (re.compile(r"\ba\s+[aeiou]", re.IGNORECASE), 'Grammar: use "an" before vowel sounds, not "a"'),
    (re.compile(r" {2,}"), "Grammar: remove extra spaces"),
    (re.compile(r"[.!?]\s+[a-z]"), "Grammar: capitalize the first letter after sentence endings"),
]

ACADEMIC_PHRASES = [
    "according to", "the author suggests", "the passage indicates", "based on the text",
    "argument", "evidence", "furthermore", "however", "consequently", "in contrast",
    "speaker", "conversation", "discussion", "presentation", "lecture",
    "opinion", "experience", "describe", "compare", "explain why",
]

COMMON_THEMES = [
    "education", "environment", "technology", "health", "work", "travel",
    "culture", "society", "family", "media", "government", "economics",
]

INFORMAL_RE = re.compile(r"\b(gonna|wanna|yeah|ok|cool|awesome)\b", re.IGNORECASE)

QUESTION_FORMATS = {
    "multiple_choice": re.compile(r"^(What|Which|How|Why|Where|When)\s", re.IGNORECASE),
    "true_false": re.compile(r"^(The following statement is|According to|Based on)\s", re.IGNORECASE),
    "fill_blank": re.compile(r"_{3,}|\[.*\]"),
}

ACADEMIC_WORDS = [
    "analyze", "evaluate", "synthesize", "demonstrate", "illustrate", "emphasize",
    "significant", "substantial", "considerable", "potential", "comprehensive",
    "fundamental", "essential", "critical", "relevant", "appropriate",
]
BASIC_WORDS = ["good", "bad", "big", "small", "nice", "get", "put", "go"]
NATURAL_PHRASES = [
    "take into account", "by and large", "in other words", "for instance",
    "as a result", "in addition", "on the other hand", "in conclusion",
]

COMPLEX_STRUCTURES = [
    re.compile(r"\bwhile\s+\w+", re.IGNORECASE),
    re.compile(r"\balthough\s+\w+", re.IGNORECASE),
    re.compile(r"\bwhereas\s+\w+", re.IGNORECASE),
    re.compile(r"\bnot only.*but also", re.IGNORECASE),
    re.compile(r"\bshould.*occur", re.IGNORECASE),
    re.compile(r"\bwere.*to\s+\w+", re.IGNORECASE),
]
PASSIVE_RE = re.compile(r"\b(is|are|was|were|has been|have been)\s+\w+ed\b", re.IGNORECASE)

WHY_RE = re.compile(r"\b(because|since|as|due to|owing to|reason|explains why)\b", re.IGNORECASE)
LEARNING_KEYWORDS = [
    "remember", "tip", "strategy", "approach", "technique", "method",
    "always", "never", "avoid", "focus on", "pay attention to",
]
EXAMPLE_RE = re.compile(r"\bfor example\b|\bfor instance\b|\bsuch as\b|\be\.g\.", re.IGNORECASE)
ACTIVE_LEARNING_RE = re.compile(r"\bnotice\b|\bobserve\b|\bconsider\b|\bthink about\b", re.IGNORECASE)

SERIOUS_SUGGESTION_WORDS = ("grammar", "inappropriate")


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def _clamp(score: int) -> int:
    return max(0, min(100, score))


def _option_texts(question: Any) -> list[str]:
    texts = []
    for option in getattr(question, "options", None) or []:
        if isinstance(option, str):
            texts.append(option)
        elif hasattr(option, "left"):
            texts.extend([option.left, option.right])
    return texts


def _topic_terms(request: GenerationRequest | None) -> list[str]:
    if request is None:
        return list(COMMON_THEMES)
    words = re.findall(r"[a-z]{4,}", f"{request.topic} {request.subject}".lower())
    return list(dict.fromkeys(words)) + COMMON_THEMES


class QualityMatrix:
    """Scores questions against the six quality criteria."""

    def __init__(self, settings: QualitySettings | None = None):
        self.settings = settings or QualitySettings()

    def _check(self, criterion: str, score: int, feedback: str, suggestions: list[str]) -> QualityCheckResult:
        score = _clamp(score)
        return QualityCheckResult(
            criterion=criterion,
            score=score,
            is_passing=score >= self.settings.threshold_for(criterion),
            feedback=feedback,
            suggestions=suggestions,
        )

    def check_clarity_accuracy(self, question: Any) -> QualityCheckResult:
        """Is the question and explanation clear and grammatically sound?"""
        score = 100
        suggestions: list[str] = []
        feedback = "Question is clear and accurate"

        if len(question.question) < 10:
            score -= 30
            suggestions.append("Question is too short - add more context")
            feedback = "Question lacks sufficient detail"

        if any(pattern.search(question.question) for pattern in CONFUSING_PATTERNS):
            score -= 25
            suggestions.append("Simplify confusing double negatives or repetitive phrasing")
            feedback = "Question contains confusing or repetitive language"

        if len(question.explanation) < 20:
            score -= 20
            suggestions.append("Provide a more detailed explanation")
            feedback = "Explanation needs more detail"

        issues = self.detect_grammar_issues(f"{question.question} {question.explanation}")
        if issues:
            score -= 5 * len(issues)
            suggestions.extend(issues)
            feedback = "Grammar issues detected"

        return self._check("clarity_accuracy", score, feedback, suggestions)

    def check_domain_relevance(self, question: Any, request: GenerationRequest | None = None) -> QualityCheckResult:
        """Does the question use academic language and stay on the requested topic?"""
        score = 100
        suggestions: list[str] = []
        feedback = "Content is highly relevant to the topic"
        text = f"{question.question} {question.explanation}".lower()

        if not any(phrase in text for phrase in ACADEMIC_PHRASES):
            score -= 20
            suggestions.append("Include more academic language and phrasing")
            feedback = "Question could use more academic language"

        if not any(term in text for term in _topic_terms(request)):
            score -= 15
            suggestions.append("Connect the question more clearly to the quiz topic")
            feedback = "Question should relate more closely to the topic"

        if INFORMAL_RE.search(text):
            score -= 25
            suggestions.append("Informal language is inappropriate for assessment, use an academic register")
            feedback = "Question contains informal language inappropriate for assessment"

        explanation = question.explanation.lower()
        if any(word in explanation for word in ("strategy", "tip", "technique")):
            score += 10
            feedback = "Excellent - includes test-taking strategies"

        return self._check("domain_relevance", score, feedback, suggestions)

    def check_examiner_lens(self, question: Any) -> QualityCheckResult:
        """Would an examiner accept the question format and its distractors?"""
        score = 100
        suggestions: list[str] = []
        feedback = "Question meets examiner standards"

        expected = QUESTION_FORMATS.get(question.question_type)
        if expected and not expected.search(question.question):
            score -= 15
            suggestions.append(f"Use a conventional {question.question_type} question format")
            feedback = "Question format should match assessment conventions"

        if question.question_type == "multiple_choice":
            discrimination = self._discrimination_issues(question.options)
            if discrimination:
                score -= 20
                suggestions.extend(discrimination)
                feedback = "Question may not effectively discriminate between ability levels"

            if self._options_too_similar(question.options):
                score -= 10
                suggestions.append("Reduce repetitive words across options")
                feedback = "Answer options need improvement"

        return self._check("examiner_lens", score, feedback, suggestions)

    def check_vocabulary_quality(self, question: Any) -> QualityCheckResult:
        """Does the vocabulary sound natural and academic?"""
        score = 100
        suggestions: list[str] = []
        feedback = "Vocabulary is natural and academic"
        text = " ".join([question.question, question.explanation, *_option_texts(question)]).lower()

        if not any(word in text for word in ACADEMIC_WORDS):
            score -= 15
            suggestions.append("Include more sophisticated academic vocabulary")
            feedback = "Vocabulary could be more academic and sophisticated"

        overused = [word for word in BASIC_WORDS if len(re.findall(rf"\b{word}\b", text)) > 1]
        if len(overused) > 2:
            score -= 20
            suggestions.append("Replace basic vocabulary with more sophisticated alternatives")
            feedback = "Over-reliance on basic vocabulary"

        if any(phrase in text for phrase in NATURAL_PHRASES):
            score += 5
            feedback = "Excellent use of natural academic phrases"

        return self._check("vocabulary_quality", score, feedback, suggestions)

    def check_grammar_structures(self, question: Any) -> QualityCheckResult:
        """Does the text use varied, sophisticated sentence structures?"""
        score = 100
        suggestions: list[str] = []
        feedback = "Grammar structures are varied"
        text = f"{question.question} {question.explanation}"

        if not any(pattern.search(text) for pattern in COMPLEX_STRUCTURES):
            score -= 15
            suggestions.append("Include more complex sentence structures (conditionals, relative clauses)")
            feedback = "Sentence structures could be more sophisticated"

        if not PASSIVE_RE.search(text):
            score -= 10
            suggestions.append("Consider some passive constructions for an academic tone")

        sentences = [s.strip() for s in re.split(r"[.!?]+", text) if len(s.strip()) > 5]
        beginnings = [s.split()[0].lower() for s in sentences if s.split()]
        if beginnings and len(set(beginnings)) / len(beginnings) < 0.6:
            score -= 15
            suggestions.append("Vary sentence beginnings for better flow")
            feedback = "Sentence structures need more variety"

        return self._check("grammar_structures", score, feedback, suggestions)

    def check_educational_value(self, question: Any) -> QualityCheckResult:
        """Does the explanation teach why the answer is right?"""
        explanation = question.explanation
        if not explanation:
            return QualityCheckResult(
                criterion="educational_value",
                score=0,
                is_passing=False,
                feedback="No explanation provided",
                suggestions=["Add a detailed explanation of the reasoning"],
            )

        score = 100
        suggestions: list[str] = []
        feedback = "Explanation provides excellent educational value"
        lowered = explanation.lower()

        if not WHY_RE.search(explanation):
            score -= 25
            suggestions.append("Explain WHY the answer is correct, not just WHAT the answer is")
            feedback = "Explanation needs to include reasoning"

        if any(keyword in lowered for keyword in LEARNING_KEYWORDS):
            score += 15
            feedback = "Excellent - includes learning strategies"

        if EXAMPLE_RE.search(explanation):
            score += 10
            feedback = "Great use of examples to clarify concepts"

        if len(explanation) < 50:
            score -= 20
            suggestions.append("Provide a more detailed explanation with reasoning and examples")
            feedback = "Explanation is too brief"

        if ACTIVE_LEARNING_RE.search(explanation):
            score += 10

        return self._check("educational_value", score, feedback, suggestions)

    @staticmethod
    def detect_grammar_issues(text: str) -> list[str]:
        return [message for pattern, message in GRAMMAR_RULES if pattern.search(text)]

    @staticmethod
    def _discrimination_issues(options: list[str]) -> list[str]:
        issues = []
        if len(options) < 2:
            return issues

        lengths = [len(option) for option in options]
        average = sum(lengths) / len(lengths)
        if not any(abs(length - average) > average * 0.3 for length in lengths):
            issues.append("Vary the length of answer options to avoid pattern recognition")

        lowered = [option.lower() for option in options]
        if any("never" in o or "always" in o or o == "none of the above" for o in lowered):
            issues.append("Avoid obviously incorrect distractors - make all options plausible")
        return issues

    @staticmethod
    def _options_too_similar(options: list[str]) -> bool:
        if len(options) < 2:
            return False
        words = [option.lower().split() for option in options]
        first = words[0]
        common = [word for word in first if all(word in other for other in words)]
        return len(common) > len(first) * 0.5

    def overall_score(self, checks: Iterable[QualityCheckResult]) -> int:
        """Weighted mean of the check scores, critical checks weighted higher."""
        total_weight = 0.0
        weighted = 0.0
        for check in checks:
            weight = self.settings.critical_weight if check.criterion in self.settings.critical_checks else 1.0
            total_weight += weight
            weighted += check.score * weight
        return _round_half_up(weighted / total_weight) if total_weight else 0

    def critical_checks_pass(self, checks: list[QualityCheckResult]) -> bool:
        by_name = {check.criterion: check for check in checks}
        return all(
            by_name[criterion].is_passing for criterion in self.settings.critical_checks if criterion in by_name
        )

    def requires_manual_review(self, checks: list[QualityCheckResult], overall: int) -> bool:
        threshold = self.settings.pass_threshold
        near_threshold = threshold - self.settings.review_margin <= overall < threshold
        serious = any(
            word in suggestion.lower()
            for check in checks
            for suggestion in check.suggestions
            for word in SERIOUS_SUGGESTION_WORDS
        )
        return near_threshold or not self.critical_checks_pass(checks) or serious

    @staticmethod
    def recommendations(checks: list[QualityCheckResult]) -> list[str]:
        failed = [check for check in checks if not check.is_passing]
        recommendations = []
        for check in failed:
            recommendations.append(f"{check.criterion.upper()}: {check.feedback}")
            recommendations.extend(f"  - {suggestion}" for suggestion in check.suggestions)

        if len(failed) > 3:
            recommendations.insert(0, "OVERALL: This question needs significant revision before publication")
        elif failed:
            recommendations.insert(0, "OVERALL: Address the specific issues below to improve question quality")
        return recommendations

    def evaluate_question(
        self,
        question: Any,
        request: GenerationRequest | None = None,
        index: int = 0,
    ) -> QuestionQualityResult:
        """
        Run every check on one canonical question.

        Args:
            question: A canonical question model
            request: The generation request, used to judge topic relevance
            index: Position of the question in its quiz

        Returns:
            QuestionQualityResult
        """
        checks = [
            self.check_clarity_accuracy(question),
            self.check_domain_relevance(question, request),
            self.check_examiner_lens(question),
            self.check_vocabulary_quality(question),
            self.check_grammar_structures(question),
            self.check_educational_value(question),
        ]
        overall = self.overall_score(checks)
        result = QuestionQualityResult(
            question_index=index,
            overall_score=overall,
            is_passing=overall >= self.settings.pass_threshold and self.critical_checks_pass(checks),
            checks=checks,
            recommendations=self.recommendations(checks),
            requires_manual_review=self.requires_manual_review(checks, overall),
        )
        logger.debug(
            "Question %d scored %d (failed: %s)",
            index + 1,
            overall,
            ", ".join(result.failed_checks) or "none",
        )
        return result

    def evaluate_quiz(self, quiz: CanonicalQuiz, request: GenerationRequest | None = None) -> QuizQualityReport:
        """
        Score every question of a quiz and aggregate the results.

        The quiz passes when its mean score reaches the pass threshold and no
        question fails a critical check.
        """
        results = [self.evaluate_question(q, request, index=i) for i, q in enumerate(quiz.questions)]
        if not results:
            return QuizQualityReport()

        overall = _round_half_up(sum(r.overall_score for r in results) / len(results))
        critical_ok = all(self.critical_checks_pass(r.checks) for r in results)
        report = QuizQualityReport(
            results=results,
            overall_score=overall,
            is_passing=overall >= self.settings.pass_threshold and critical_ok,
            passing_questions=sum(1 for r in results if r.is_passing),
            needs_review=sum(1 for r in results if r.requires_manual_review),
        )
        logger.info(
            "Quality Matrix: %d/100 over %d questions (%d passing, %d need review)",
            report.overall_score,
            report.total_questions,
            report.passing_questions,
            report.needs_review,
        )
        return report

    def quick_validation(self, question: Any, request: GenerationRequest | None = None) -> tuple[bool, int]:
        """Pass/fail and score without the detailed breakdown."""
        result = self.evaluate_question(question, request)
        return result.is_passing, result.overall_score
