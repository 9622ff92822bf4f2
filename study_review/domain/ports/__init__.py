from .quiz_generator import QuizGenerator

__all__ = ["QuizGenerator"]
