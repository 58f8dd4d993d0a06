"""
Prompt builder for the Code-Quality Grader.

Constructs prompts that:
- Give language-specific evaluation guidance
- Supply the reference solution as context only
- Pin the reply to a single JSON object with a bounded score
"""

from exam_grader.grading.vbnet import StructureReport
from exam_grader.models import Question

_VBNET_GUIDANCE = """VB.NET CONSOLE APPLICATION GRADING:
- Module structure with proper Module...End Module (or Class for OOP)
- Sub Main() as the entry point for console applications
- Console.WriteLine() for output and Console.ReadLine() for input
- Proper Dim declarations with As <Type> (Integer, String, Boolean, Double, etc.)
- Control structures: If/Then/Else/End If, For/Next, While/End While, Do/Loop, Select Case
- Error handling with Try/Catch/End Try where applicable
- VB.NET naming conventions (PascalCase for methods, camelCase for variables)"""


class PromptBuilder:
    """
    Builds Code-Quality Grader prompts.

    The prompts are designed to:
    1. Focus on logic and problem solving over syntax perfection
    2. Apply the conventions of the answer's programming language
    3. Produce a JSON object the parser can validate field by field
    """

    SYSTEM_PROMPT = """You are an expert programming instructor grading student code for an exam.

GRADING RULES:
1. Judge whether the code solves the question; the reference solution is one valid approach, not the only one.
2. Focus on LOGIC and PROBLEM-SOLVING first, then readability and language conventions.
3. Syntax slips that don't break the logic cost only a small deduction.
4. Name what the student did well before what they should improve.

OUTPUT RULES:
- Respond with a single valid JSON object and nothing else.
- "score" is a number between 0 and the maximum marks given in the request."""

    LANGUAGE_GUIDANCE: dict[str, str] = {
        "python": "Check proper indentation, pythonic patterns, use of built-in functions, and PEP 8 conventions.",
        "java": "Check class structure, type declarations, proper Java conventions, camelCase naming, and object-oriented design.",
        "c": "Check pointer usage, memory management and memory safety, proper C syntax, and efficiency.",
        "cpp": "Check class design, STL usage, memory management, and C++ best practices.",
        "javascript": "Check ES6+ features, async/await patterns, proper scoping, and modern JavaScript practices.",
        "vb": _VBNET_GUIDANCE,
        "vbnet": _VBNET_GUIDANCE,
    }

    DEFAULT_LANGUAGE = "python"

    @classmethod
    def guidance_for(cls, language: str) -> str:
        """Return the evaluation guidance for a language, defaulting to Python."""
        return cls.LANGUAGE_GUIDANCE.get(
            language.strip().lower(), cls.LANGUAGE_GUIDANCE[cls.DEFAULT_LANGUAGE]
        )

    @classmethod
    def build_grading_prompt(
        cls,
        question: Question,
        student_code: str,
        language: str,
        structure: StructureReport | None = None,
    ) -> str:
        """
        Build the user prompt for grading one coding answer.

        Args:
            question: The coding question (text, sample code, marks).
            student_code: The learner's code.
            language: Programming language used for guidance.
            structure: Optional local structure analysis to include.

        Returns:
            The formatted user prompt.
        """
        sample = question.sample_code or "No sample code provided - any reasonable solution is acceptable"
        lines: list[str] = [
            "GRADING TASK",
            "",
            f"Question: {question.question_text or '(no question text)'}",
            "",
            "Reference Solution (for context only - the student's solution can differ):",
            f"```{language}",
            sample,
            "```",
            "",
            f"Student's Code ({language}):",
            "---BEGIN CODE---",
            student_code,
            "---END CODE---",
            "",
            f"Language-Specific Requirements for {language.upper()}:",
            cls.guidance_for(language),
            "",
        ]

        if structure is not None:
            lines.append("Local Structure Analysis:")
            lines.extend(structure.as_prompt_lines())
            lines.append("")

        lines.extend(
            [
                f"Maximum Marks: {question.marks}",
                "",
                "OUTPUT FORMAT (respond with ONLY this JSON, no other text):",
                "{",
                f'  "score": <number between 0 and {question.marks}>,',
                '  "feedback": "<explanation of the score>",',
                '  "strengths": ["<strength>", "..."],',
                '  "improvements": ["<improvement>", "..."]',
                "}",
            ]
        )
        return "\n".join(lines)

    @staticmethod
    def get_system_prompt() -> str:
        """Get the system prompt for code grading."""
        return PromptBuilder.SYSTEM_PROMPT
