"""
Proctored Exam Delivery Engine

This package contains the core components for delivering a timed,
integrity-monitored multiple-choice exam:
- models: Data structures for exams, questions and sessions
- shuffle: Seeded question and option randomization
- monitor: Violation counting and disqualification escalation
- store: Persistence contract and file-backed implementation
- session: The exam session state machine
"""

__version__ = "1.0.0"
