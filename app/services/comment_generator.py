"""Report card remarks chosen from performance-tier templates."""

import random
from enum import Enum
from typing import Dict, List, Optional, Tuple


class PerformanceTier(str, Enum):
    EXCELLENT = "excellent"
    VERY_GOOD = "very_good"
    GOOD = "good"
    FAIR = "fair"
    NEEDS_IMPROVEMENT = "needs_improvement"


TIER_THRESHOLDS: List[Tuple[float, PerformanceTier]] = [
    (70, PerformanceTier.EXCELLENT),
    (60, PerformanceTier.VERY_GOOD),
    (50, PerformanceTier.GOOD),
    (40, PerformanceTier.FAIR),
]

TEACHER_TEMPLATES: Dict[PerformanceTier, List[str]] = {
    PerformanceTier.EXCELLENT: [
        "{name} has shown exceptional academic performance this term. Keep up the excellent work!",
        "Outstanding achievement this term! {name} demonstrates strong understanding and dedication to learning.",
        "{name} has maintained an excellent standard throughout this term. A truly commendable performance.",
    ],
    PerformanceTier.VERY_GOOD: [
        "{name} has performed very well this term. With a little more effort, excellence is within reach.",
        "A very good performance from {name}. Continue with the same dedication and aim higher.",
        "{name} shows great potential and has done very well this term. Keep striving for the best.",
    ],
    PerformanceTier.GOOD: [
        "{name} has shown good effort this term. There is room for improvement with more focus and hard work.",
        "A satisfactory performance from {name}. With extra effort, better results are achievable.",
        "{name} is capable of more. Encourage consistent study habits for improved performance next term.",
    ],
    PerformanceTier.FAIR: [
        "{name} needs to put in more effort. With additional support and dedication, improvement is possible.",
        "{name} should focus more on studies. Regular revision and asking questions will help improve performance.",
        "{name} has the potential to do better. Extra tutoring and more practice are recommended.",
    ],
    PerformanceTier.NEEDS_IMPROVEMENT: [
        "{name} needs significant improvement. Extra classes and consistent practice are strongly recommended.",
        "{name} should seek additional help and focus on building strong foundations in all subjects.",
        "{name} requires intensive support. Regular study sessions and parent involvement will be beneficial.",
    ],
}

PRINCIPAL_TEMPLATES: Dict[PerformanceTier, List[str]] = {
    PerformanceTier.EXCELLENT: [
        "{name} is a model student who consistently demonstrates excellence. The school is proud of this achievement.",
        "Congratulations to {name} on an outstanding performance. Continue to be an inspiration to others.",
        "{name} has achieved excellent results. We look forward to continued success in future terms.",
    ],
    PerformanceTier.VERY_GOOD: [
        "{name} has shown commendable effort and achieved very good results. Keep up the good work.",
        "Well done to {name} on a very good performance. The potential for excellence is evident.",
        "{name} is on the right track. Continue working hard and aim for even greater heights.",
    ],
    PerformanceTier.GOOD: [
        "{name} has shown satisfactory progress. With increased focus, even better results are attainable.",
        "We encourage {name} to continue making efforts. The school supports all students on their learning journey.",
        "{name} has the ability to excel. We encourage more dedication to studies next term.",
    ],
    PerformanceTier.FAIR: [
        "{name} should dedicate more time to academic work. The school will provide necessary support for improvement.",
        "We urge {name} to take studies more seriously. With proper guidance and effort, improvement is possible.",
        "{name} needs to focus more on academics. We recommend parent-teacher collaboration for support.",
    ],
    PerformanceTier.NEEDS_IMPROVEMENT: [
        "{name} requires immediate academic intervention. We recommend scheduling a meeting to discuss a support plan.",
        "The school is concerned about {name}'s performance. A structured study plan and monitoring are recommended.",
        "{name} needs intensive academic support. We encourage parents to work closely with teachers for improvement.",
    ],
}


def performance_tier(percentage: float) -> PerformanceTier:
    for threshold, tier in TIER_THRESHOLDS:
        if percentage >= threshold:
            return tier
    return PerformanceTier.NEEDS_IMPROVEMENT


def last_name(student_name: str) -> str:
    """Remarks address the student by last name."""
    parts = student_name.split()
    return parts[-1] if parts else student_name.strip()


class CommentGenerator:
    """Picks teacher and principal remarks; the random source is injectable."""

    def __init__(self, rng: Optional[random.Random] = None):
        self.rng = rng or random.Random()

    def _pick(self, templates: Dict[PerformanceTier, List[str]], student_name: str, percentage: float) -> str:
        choices = templates[performance_tier(percentage)]
        return self.rng.choice(choices).format(name=last_name(student_name))

    def teacher_comment(self, student_name: str, percentage: float) -> str:
        return self._pick(TEACHER_TEMPLATES, student_name, percentage)

    def principal_comment(self, student_name: str, percentage: float) -> str:
        return self._pick(PRINCIPAL_TEMPLATES, student_name, percentage)
