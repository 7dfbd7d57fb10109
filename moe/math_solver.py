"""
Step-by-step math solutions from the Groq model.

The model is asked for one JSON object; whatever it leaves out is backfilled
here so the page always gets a complete lesson.
"""

from typing import Any, Dict, List

from .schemas import MathSolution

MATH_DIFFICULTIES = ("easy", "medium", "hard")


def build_math_prompt(problem: str) -> str:
    return (
        "You are Moe, a joyful tutor helping an 8-14 year old student from Sierra Leone.\n"
        f"Solve this math problem step-by-step: {problem}.\n\n"
        "Return ONLY valid JSON with this shape:\n"
        "{\n"
        '  "question": string,\n'
        '  "topic": string,\n'
        '  "difficulty": "easy" | "medium" | "hard",\n'
        '  "answer": string,\n'
        '  "steps": Array<{"title": string, "explanation": string, "visual": string, "tip": string}>,\n'
        '  "realWorldExample": string,\n'
        '  "practiceProblems": Array<{"question": string, "answer": string, "hint": string}>,\n'
        '  "encouragement": string\n'
        "}\n\n"
        "Rules:\n"
        "- Keep language friendly and simple.\n"
        "- visuals can be ASCII layout to show work (<= 6 lines each).\n"
        "- At least 4 steps, no more than 6.\n"
        "- Practice problems should match the topic and be solvable by the student.\n"
        "- Use culturally relevant examples when possible.\n"
        "- Output must be JSON only with double quotes."
    )


def _text(value: Any) -> str:
    return value.strip() if isinstance(value, str) else ""


def _answer_text(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def map_difficulty(value: Any) -> str:
    normal = _text(value).lower()
    return normal if normal in MATH_DIFFICULTIES else "medium"


def fallback_steps(data: Dict[str, Any]) -> List[Dict[str, str]]:
    question = _text(data.get("question")) or "this math problem"
    return [
        {
            "title": "Understand the problem",
            "explanation": f"Read the problem carefully: {question}. What are we trying to find?",
            "visual": question,
            "tip": "Underline the important numbers and words.",
        },
        {
            "title": "Choose a strategy",
            "explanation": "Think about what math operation we should use and why.",
            "visual": "Strategy -> Steps -> Answer",
            "tip": "Remember similar problems you've solved before.",
        },
        {
            "title": "Work it out",
            "explanation": "Solve the problem step-by-step. Write down your work clearly.",
            "visual": "Step 1\nStep 2\nStep 3",
            "tip": "Double-check each step before moving on.",
        },
        {
            "title": "Check your answer",
            "explanation": "Does your answer make sense? Try the reverse operation to be sure.",
            "visual": "Check -> Reason -> Share",
            "tip": "If it doesn't make sense, retrace your steps calmly.",
        },
    ]


def fallback_practice_problems(data: Dict[str, Any]) -> List[Dict[str, str]]:
    topic = _text(data.get("topic")) or "math"
    return [{
        "question": f"Create a new {topic} question similar to the original one and solve it yourself.",
        "answer": "",
        "hint": "Follow the main steps Moe showed you.",
    }]


def _entries(value: Any) -> List[Dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [v if isinstance(v, dict) else {} for v in value]


def normalize_math_solution(data: Dict[str, Any]) -> MathSolution:
    """Fill every missing field of the model's answer with a friendly default."""
    steps = _entries(data.get("steps")) or fallback_steps(data)
    problems = _entries(data.get("practiceProblems")) or fallback_practice_problems(data)

    return MathSolution(
        question=_text(data.get("question")) or "Let's solve this problem together!",
        topic=_text(data.get("topic")) or "General Math",
        difficulty=map_difficulty(data.get("difficulty")),
        answer=_answer_text(data.get("answer")),
        steps=[
            {
                "title": _text(step.get("title")) or f"Step {index + 1}",
                "explanation": _text(step.get("explanation")) or "Let's think through this part carefully.",
                "visual": _text(step.get("visual")),
                "tip": _text(step.get("tip")) or "Keep going, you are doing great!",
            }
            for index, step in enumerate(steps)
        ],
        real_world_example=(
            _text(data.get("realWorldExample"))
            or "Imagine using this math idea while shopping at the market in Freetown."
        ),
        practice_problems=[
            {
                "question": _text(problem.get("question")) or "Try a similar problem.",
                "answer": _answer_text(problem.get("answer")),
                "hint": _text(problem.get("hint")) or "Use the same steps we just practiced!",
            }
            for problem in problems
        ],
        encouragement=(
            _text(data.get("encouragement"))
            or "Awesome effort! Keep practicing and you will master this in no time."
        ),
    )
