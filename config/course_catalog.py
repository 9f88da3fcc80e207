# config/course_catalog.py

from typing import Dict, Any, List

COURSES: List[Dict[str, Any]] = [
    {
        "id": "1",
        "title": "Design Thinking from Fundamentals to Practice",
        "instructor": "Taro Yamada",
        "category": "Design",
        "image": "/images/course1.jpg",
        "duration": "6h 30m",
        "level": "Intermediate",
        "required_plan": "standard",
    },
    {
        "id": "2",
        "title": "Hands-on Web Application Development",
        "instructor": "Ichiro Sato",
        "category": "Programming",
        "image": "/images/course2.jpg",
        "duration": "8h 45m",
        "level": "Advanced",
        "required_plan": "standard",
    },
    {
        "id": "3",
        "title": "Current Trends in Digital Marketing",
        "instructor": "Hanako Suzuki",
        "category": "Marketing",
        "image": "/images/course3.jpg",
        "duration": "5h 15m",
        "level": "Beginner",
        "required_plan": "free",
    },
    {
        "id": "4",
        "title": "Practical Data Analysis and Visualization",
        "instructor": "Kenta Nakamura",
        "category": "Data Science",
        "image": "/images/course1.jpg",
        "duration": "7h 20m",
        "level": "Intermediate",
        "required_plan": "standard",
    },
    {
        "id": "5",
        "title": "UX Design for Mobile Apps",
        "instructor": "Misaki Tanaka",
        "category": "Design",
        "image": "/images/course2.jpg",
        "duration": "6h 10m",
        "level": "Beginner",
        "required_plan": "free",
    },
    {
        "id": "6",
        "title": "Core Concepts of AI and Machine Learning",
        "instructor": "Makoto Takahashi",
        "category": "AI & Machine Learning",
        "image": "/images/course3.jpg",
        "duration": "9h 15m",
        "level": "Advanced",
        "required_plan": "standard",
    },
]

CATEGORIES: List[str] = [
    "Design",
    "Programming",
    "Marketing",
    "Data Science",
    "AI & Machine Learning",
    "Business",
]

LEVELS: List[str] = ["Beginner", "Intermediate", "Advanced"]

# Filter value meaning "no filter"
ALL = "all"
