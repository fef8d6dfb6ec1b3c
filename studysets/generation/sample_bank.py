"""Fixed fallback material used when the model is unavailable or comes up short."""
from typing import List, Dict

SUBJECT_CATEGORIES: Dict[str, List[str]] = {
    'mathematics': ['Algebra', 'Geometry', 'Calculus', 'Statistics', 'Number Theory'],
    'history': ['Ancient History', 'Medieval', 'Modern', 'World Wars', 'Political History'],
    'science': ['Physics', 'Chemistry', 'Biology', 'Astronomy', 'Earth Science'],
    'literature': ['Fiction', 'Poetry', 'Drama', 'Literary Theory', 'World Literature'],
    'geography': ['Physical Geography', 'Human Geography', 'Cartography', 'Climate', 'Geology'],
    'programming': ['Algorithms', 'Data Structures', 'Web Development', 'Databases', 'Languages'],
}

GENERIC_CATEGORIES: List[str] = ['Fundamentals', 'Concepts', 'Applications', 'Theory', 'History']

SAMPLE_QUESTIONS: List[Dict[str, object]] = [
    {
        'subject': 'mathematics',
        'category': 'Algebra',
        'question': 'What is the solution to the equation 2x + 5 = 15?',
        'options': ['x = 5', 'x = 7', 'x = 10', 'x = 3'],
        'answer': 'x = 5',
        'explanation': 'Subtracting 5 from both sides: 2x = 10. Then dividing by 2: x = 5.',
    },
    {
        'subject': 'science',
        'category': 'Physics',
        'question': 'What is the unit of electrical resistance?',
        'options': ['Watt', 'Ohm', 'Volt', 'Ampere'],
        'answer': 'Ohm',
        'explanation': 'The ohm (symbol: Ω) is the SI unit of electrical resistance.',
    },
    {
        'subject': 'history',
        'category': 'World Wars',
        'question': 'In which year did World War II end?',
        'options': ['1943', '1944', '1945', '1946'],
        'answer': '1945',
        'explanation': 'World War II ended in 1945 with the surrender of Germany in May and Japan in September.',
    },
    {
        'subject': 'geography',
        'category': 'Physical Geography',
        'question': 'Which is the longest river in the world?',
        'options': ['Amazon', 'Nile', 'Mississippi', 'Yangtze'],
        'answer': 'Nile',
        'explanation': 'The Nile is the longest river in the world, with a length of approximately 6,650 kilometers.',
    },
    {
        'subject': 'programming',
        'category': 'Data Structures',
        'question': 'Which data structure operates on a LIFO principle?',
        'options': ['Queue', 'Stack', 'Linked List', 'Tree'],
        'answer': 'Stack',
        'explanation': 'A stack follows the Last In, First Out (LIFO) principle where the last element added is the first one to be removed.',
    },
]


def generate_categories(subject: str) -> List[str]:
    """Map a free-text subject to its five rotation categories.

    First table key contained in the lowercased subject wins; unknown
    subjects get GENERIC_CATEGORIES.
    """
    normalized = subject.lower()
    for key, categories in SUBJECT_CATEGORIES.items():
        if key in normalized:
            return list(categories)
    return list(GENERIC_CATEGORIES)


def related_samples(subject: str) -> List[Dict[str, object]]:
    normalized = subject.lower()
    return [s for s in SAMPLE_QUESTIONS if s['subject'] in normalized or normalized in s['subject']]
