"""Sample catalog and dev accounts for local runs and tests.

Documents go in raw, the way an external authoring tool would write
them, so they pass through the same boundary validation as real data.
Seeding is idempotent.
"""

from __future__ import annotations

import logging

from portal.models.user import User
from portal.repos.provider import Repos
from portal.services import auth_service

logger = logging.getLogger(__name__)

SAFETY_COURSE_ID = "workplace-safety"
SECURITY_COURSE_ID = "security-basics"

LEARNER_EMAIL = "learner@example.com"
LEARNER_PASSWORD = "learner-password"
ADMIN_EMAIL = "admin@example.com"
ADMIN_PASSWORD = "admin-password"

_SAFETY_COURSE = {
    "title": "Workplace Safety Fundamentals",
    "description": "Hazards, reporting and emergency procedures for every site.",
    "category": "Compliance",
    "imageUrl": "/images/workplace-safety.jpg",
    "lessons": [
        {
            "id": "ws-1",
            "title": "Why Safety Matters",
            "order": 1,
            "content": "# Why Safety Matters\n\nMost incidents are preventable.",
        },
        {
            "id": "ws-2",
            "title": "Spotting Hazards",
            "order": 2,
            "content": "# Spotting Hazards\n\n- Slips and trips\n- Electrical",
        },
        {
            "id": "ws-3",
            "title": "Protective Equipment",
            "order": 3,
            "content": "# Protective Equipment\n\nWear the PPE the task requires.",
        },
        {
            "id": "ws-4",
            "title": "Reporting Incidents",
            "order": 4,
            "content": "# Reporting Incidents\n\nReport every incident the same day.",
        },
        {
            "id": "ws-5",
            "title": "Emergency Procedures",
            "order": 5,
            "content": "# Emergency Procedures\n\nKnow your exits and assembly point.",
        },
    ],
}

_SAFETY_QUIZ = {
    "courseId": SAFETY_COURSE_ID,
    "courseTitle": "Workplace Safety Fundamentals",
    "passingScore": 70,
    "totalPoints": 100,
    "questions": [
        {
            "question": "When should an incident be reported?",
            "options": ["The same day", "At the end of the month", "Only if hurt"],
            "correctAnswer": "The same day",
            "points": 25,
        },
        {
            "question": "Which of these is a common hazard?",
            "options": ["Wet floors", "Clean desks", "Open windows"],
            "correctAnswer": "Wet floors",
            "points": 25,
        },
        {
            "question": "Who decides which PPE to wear?",
            "options": ["The task requirements", "Personal taste", "Nobody"],
            "correctAnswer": "The task requirements",
            "points": 25,
        },
        {
            "question": "Where do you go when the alarm sounds?",
            "options": ["The assembly point", "The car park exit", "Your desk"],
            "correctAnswer": "The assembly point",
            "points": 25,
        },
    ],
}

# Older documents keep their lessons under "modules" and carry no ids.
_SECURITY_COURSE = {
    "title": "Information Security Basics",
    "category": "IT",
    "modules": [
        {"title": "Passwords", "content": "Use a password manager.", "order": 1},
        {"title": "Phishing", "content": "Check the sender first.", "order": 2},
        {"title": "Devices", "content": "Lock your screen.", "order": 3},
    ],
}

_SECURITY_QUIZ = {
    "courseId": SECURITY_COURSE_ID,
    "courseTitle": "Information Security Basics",
    "questions": [
        {
            "question": "What should you check first in a suspicious email?",
            "options": ["The sender", "The font", "The time"],
            "correctAnswer": "The sender",
            "points": 50,
        },
        {
            "question": "What do you do when leaving your desk?",
            "options": ["Lock the screen", "Nothing"],
            "correctAnswer": "Lock the screen",
            "points": 50,
        },
    ],
}


async def seed_catalog(repos: Repos) -> None:
    if await repos.courses.get(SAFETY_COURSE_ID) is None:
        await repos.courses.put_document(SAFETY_COURSE_ID, _SAFETY_COURSE)
        await repos.quizzes.put_document(f"{SAFETY_COURSE_ID}-quiz", _SAFETY_QUIZ)
    if await repos.courses.get(SECURITY_COURSE_ID) is None:
        await repos.courses.put_document(SECURITY_COURSE_ID, _SECURITY_COURSE)
        await repos.quizzes.put_document(f"{SECURITY_COURSE_ID}-quiz", _SECURITY_QUIZ)
    logger.info("Sample catalog seeded")


async def seed_dev_users(repos: Repos) -> None:
    accounts = [
        (LEARNER_EMAIL, LEARNER_PASSWORD, "Dev Learner", ("learner",)),
        (ADMIN_EMAIL, ADMIN_PASSWORD, "Dev Admin", ("learner", "admin")),
    ]
    for email, password, name, roles in accounts:
        if await repos.users.get_by_email(email) is not None:
            continue
        await repos.users.add(
            User.new(
                email=email,
                password_hash=auth_service.hash_password(password),
                name=name,
                department="Operations",
                roles=roles,
            )
        )
    logger.info("Dev users seeded")


async def seed_all(repos: Repos) -> None:
    await seed_catalog(repos)
    await seed_dev_users(repos)
