"""Prompt Builder - Turns a generation request into system and content prompts."""

from typing import NamedTuple

from quizgen.models.quiz import GenerationRequest, QuestionType

QUESTION_TYPE_EXAMPLES: dict[QuestionType, str] = {
    QuestionType.MULTIPLE_CHOICE: """{
      "question": "What is the process by which plants make food?",
      "question_type": "multiple_choice",
      "options": ["Photosynthesis", "Respiration", "Transpiration", "Germination"],
      "correct_answer": 0,
      "explanation": "Photosynthesis is the process where plants use sunlight, water, and carbon dioxide to produce glucose and oxygen."
    }""",
    QuestionType.TRUE_FALSE: """{
      "question": "The sun is a star.",
      "question_type": "true_false",
      "options": ["True", "False"],
      "correct_answer": 0,
      "explanation": "Yes, the sun is classified as a star - specifically a yellow dwarf star that provides light and heat to our solar system."
    }""",
    QuestionType.FILL_BLANK: """{
      "question": "The capital of France is ____.",
      "question_type": "fill_blank",
      "options": [],
      "correct_answer": 0,
      "correct_answer_text": "Paris",
      "explanation": "Paris has been the capital and largest city of France since the 12th century."
    }""",
    QuestionType.ESSAY: """{
      "question": "Explain the importance of biodiversity in ecosystems.",
      "question_type": "essay",
      "options": [],
      "correct_answer": 0,
      "correct_answer_text": "Biodiversity ensures ecosystem stability, provides resources, supports food webs, and increases resilience to environmental changes.",
      "explanation": "A comprehensive answer should cover ecosystem stability, food web complexity, resource availability, and adaptation benefits."
    }""",
    QuestionType.MATCHING: """{
      "question": "Match each planet with its characteristic:",
      "question_type": "matching",
      "options": [
        {"left": "Mars", "right": "Red planet"},
        {"left": "Jupiter", "right": "Largest planet"},
        {"left": "Saturn", "right": "Has rings"}
      ],
      "correct_answer": [0, 1, 2],
      "explanation": "Mars is red due to iron oxide, Jupiter is the largest planet in the solar system, and Saturn is famous for its rings."
    }""",
    QuestionType.ORDERING: """{
      "question": "Put these events in chronological order:",
      "question_type": "ordering",
      "options": ["World War I", "Industrial Revolution", "Renaissance", "World War II"],
      "correct_answer": [2, 1, 0, 3],
      "explanation": "The Renaissance came first, followed by the Industrial Revolution, World War I, and World War II."
    }""",
}

ANSWER_FORMAT_RULES: dict[QuestionType, str] = {
    QuestionType.MULTIPLE_CHOICE: "multiple_choice: 4 options, correct_answer is the option index (0-3)",
    QuestionType.TRUE_FALSE: 'true_false: options are exactly ["True", "False"], correct_answer is 0 (True) or 1 (False)',
    QuestionType.FILL_BLANK: "fill_blank: options is [], correct_answer is 0, correct_answer_text holds the answer",
    QuestionType.ESSAY: "essay: options is [], correct_answer is 0, correct_answer_text holds a sample answer",
    QuestionType.MATCHING: 'matching: options are [{"left": "...", "right": "..."}], correct_answer is an array of pair indices',
    QuestionType.ORDERING: "ordering: options are the items, correct_answer is an array of indices in the correct order",
}


class PromptPair(NamedTuple):
    """The two strings sent to the model for one attempt."""

    system_prompt: str
    prompt: str


class PromptBuilder:
    """Builds the system and content prompts for quiz generation."""

    def build_system_prompt(self, request: GenerationRequest, strict: bool = False) -> str:
        """
        Build the system prompt that sets the model's role and answer formats.

        Args:
            request: The generation request
            strict: Use the stricter wording meant for retry attempts

        Returns:
            System prompt text
        """
        formats = "\n".join(f"- {ANSWER_FORMAT_RULES[t]}" for t in request.question_types)

        if strict:
            return f"""You are an expert educator creating educational assessments for {request.subject}.

CRITICAL JSON GENERATION RULES:
1. Return ONLY valid JSON - no explanations, comments, or markdown
2. Use only double quotes (") for strings - never single quotes
3. Ensure all braces {{ }} and brackets [ ] are properly matched
4. No trailing commas in arrays or objects
5. Every question object must be complete - never stop in the middle of a question

CONTENT QUALITY REQUIREMENTS:
- Educational and accurate content
- Clear, unambiguous questions
- Explanations that say why the answer is correct
- Appropriate for {request.difficulty.value} difficulty level

Answer formats:
{formats}"""

        return f"""You are a helpful educational content creator. Create a quiz about "{request.topic}" for students learning {request.subject}.

Your task is to generate educational quiz questions that help students learn and practice their knowledge.

Instructions:
- Create {request.question_count} questions at {request.difficulty.value} level
- Make questions clear and educational
- Include helpful explanations for each answer
- Use only these question types: {", ".join(request.type_values)}
- Return only valid JSON format

Remember to format answers correctly:
{formats}"""

    def build_content_prompt(
        self,
        request: GenerationRequest,
        strict: bool = False,
        previous_error: str | None = None,
    ) -> str:
        """
        Build the main content prompt.

        Args:
            request: The generation request
            strict: Use the stricter retry wording
            previous_error: Why the previous attempt was rejected, if any

        Returns:
            Content prompt text
        """
        types = request.type_values
        examples = ",\n    ".join(QUESTION_TYPE_EXAMPLES[t] for t in request.question_types)
        json_shape = f"""{{
  "title": "Quiz: {request.topic}",
  "description": "Test your knowledge of {request.topic}",
  "category": "{request.subject}",
  "difficulty": "{request.difficulty.value}",
  "duration_minutes": {request.default_duration},
  "questions": []
}}"""

        sections = []
        if request.custom_prompt:
            sections.append(request.custom_prompt)

        if strict:
            if previous_error:
                sections.append(f"PREVIOUS ATTEMPT FAILED: {previous_error}")
            sections.append(
                f'Create a {request.difficulty.value} level {request.subject} quiz about "{request.topic}" '
                f"with exactly {request.question_count} questions."
            )
        else:
            sections.append(
                f'Create a {request.difficulty.value} level quiz about "{request.topic}" in the subject of {request.subject}.\n\n'
                f"Generate exactly {request.question_count} questions using ONLY these question types: {', '.join(types)}."
            )

        sections.append(f"""STRICT REQUIREMENTS:
- ONLY use these question types: {", ".join(types)}
- Do NOT generate any other question types
- Every question must be one of: {" OR ".join(types)}""")

        sections.append(self._language_section(request))
        sections.append(f"QUESTION TYPE FORMATS (ONLY USE THESE):\n    {examples}")
        sections.append(
            f"Return ONLY this JSON structure, with exactly {request.question_count} questions "
            f"following the formats above in the \"questions\" array:\n{json_shape}"
        )

        critical = [
            f"- Exactly {request.question_count} questions",
            f'- "difficulty" must be exactly "{request.difficulty.value}"',
            "- ALL questions must have detailed explanations that explain why the answer is correct",
            f"- ALL explanations MUST be written in {request.explanation_language}",
            "- Return ONLY valid JSON, no markdown, no additional text, no code blocks",
            "- Ensure no trailing commas in arrays or objects",
        ]
        if strict:
            critical += [
                "- Keep questions under 500 characters",
                "- Keep explanations under 300 characters",
                "- Avoid special characters that break JSON",
            ]
        sections.append("CRITICAL REQUIREMENTS:\n" + "\n".join(critical))

        if strict:
            sections.append("Return the JSON now:")

        return "\n\n".join(sections)

    def build_prompts(
        self,
        request: GenerationRequest,
        strict: bool = False,
        previous_error: str | None = None,
    ) -> PromptPair:
        """Build both prompts for one attempt."""
        return PromptPair(
            system_prompt=self.build_system_prompt(request, strict=strict),
            prompt=self.build_content_prompt(request, strict=strict, previous_error=previous_error),
        )

    def preview_prompts(self, request: GenerationRequest) -> PromptPair:
        """Prompts the first attempt of a request would use."""
        return self.build_prompts(request)

    @staticmethod
    def _language_section(request: GenerationRequest) -> str:
        lines = [
            "LANGUAGE REQUIREMENTS:",
            f"- Write every question and option in {request.language}",
            f"- Write ALL explanations in {request.explanation_language}",
        ]
        if request.explanation_language.lower() != request.language.lower():
            lines.append(
                f"- Explanations are in a different language from the questions: "
                f"translate them into {request.explanation_language}, keep questions in {request.language}"
            )
        if request.explanation_language.lower() == "khmer":
            lines.append("- Use proper Khmer script (ភាសាខ្មែរ) for explanations")
        return "\n".join(lines)
