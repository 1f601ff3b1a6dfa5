"""Trivia questions and answer scoring."""

from venuepredict.trivia.service import AnswerResult, get_questions, submit_answer

__all__ = ["AnswerResult", "get_questions", "submit_answer"]
