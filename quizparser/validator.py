"""
Validation Engine
=================
Post-parse validation and reporting.

After parsing each document, generates a report:
    - Total Questions Detected
    - Questions With Options (structured successfully)
    - Questions Without Options
    - Placeholder Prompts (prompt could not be isolated)
    - Missing Question Numbers (gaps in sequence)
    - Duplicate Question Numbers
    - Questions Repeating An Option Letter
    - Option count and anomaly breakdown

Degraded questions are reported here, never raised.
"""

from __future__ import annotations

import logging
from collections import Counter

from .models import (
    Anomaly,
    AnomalyType,
    Question,
    ValidationReport,
)
from .segmenter import PROMPT_PLACEHOLDER

logger = logging.getLogger(__name__)


class ValidationEngine:
    """
    Validates parsed questions and produces a report.
    """

    def validate(
        self,
        questions: list[Question],
    ) -> ValidationReport:
        """
        Run full validation on parsed questions.

        Args:
            questions: List of parsed questions to validate.

        Returns:
            ValidationReport with all detected issues.
        """
        report = ValidationReport()

        if not questions:
            logger.warning("No questions to validate")
            return report

        report.total_questions_detected = len(questions)

        numbers = [q.number for q in questions if q.number is not None]
        number_counts = Counter(numbers)

        report.duplicate_question_numbers = sorted(
            num for num, count in number_counts.items() if count > 1
        )

        if numbers:
            expected = set(range(min(numbers), max(numbers) + 1))
            report.missing_question_numbers = sorted(expected - set(numbers))

        seen: set[int] = set()
        option_counts: Counter[int] = Counter()

        for idx, q in enumerate(questions, start=1):
            label = q.number if q.number is not None else idx
            option_counts[len(q.options)] += 1
            has_prompt = q.prompt != PROMPT_PLACEHOLDER

            if q.options:
                report.questions_with_options += 1
            else:
                report.questions_without_options.append(label)
                report.anomalies.append(Anomaly(
                    type=AnomalyType.MISSING_OPTIONS,
                    question_id=q.id,
                    severity=60,
                    message="Options not recoverable for this question",
                ))

            if len(q.options) == 1:
                report.anomalies.append(Anomaly(
                    type=AnomalyType.SINGLE_OPTION,
                    question_id=q.id,
                    severity=30,
                    message="Only one option was recognized",
                ))

            repeated = sorted(
                key for key, count in Counter(q.option_keys).items()
                if count > 1
            )
            if repeated:
                report.repeated_option_keys.append(label)
                report.anomalies.append(Anomaly(
                    type=AnomalyType.REPEATED_OPTION_KEY,
                    question_id=q.id,
                    severity=40,
                    message=(
                        f"Option letter(s) {', '.join(repeated)} appear "
                        f"more than once"
                    ),
                ))

            if not has_prompt:
                report.placeholder_prompts.append(label)
                report.anomalies.append(Anomaly(
                    type=AnomalyType.MISSING_PROMPT,
                    question_id=q.id,
                    severity=80,
                    message="Prompt could not be isolated",
                ))

            if q.number is not None:
                if q.number in seen:
                    report.anomalies.append(Anomaly(
                        type=AnomalyType.DUPLICATE_QUESTION_NUMBER,
                        question_id=q.id,
                        severity=50,
                        message=(
                            f"Question number {q.number} appears more than "
                            f"once; the answer key reaches only the last one"
                        ),
                    ))
                seen.add(q.number)

            if q.options and has_prompt:
                report.structured_successfully += 1

        report.option_count_breakdown = dict(sorted(option_counts.items()))

        anomaly_counts: dict[str, int] = {}
        for anomaly in report.anomalies:
            key = anomaly.type.value
            anomaly_counts[key] = anomaly_counts.get(key, 0) + 1
        report.anomaly_breakdown = anomaly_counts

        # Log summary
        logger.info("=" * 60)
        logger.info("VALIDATION REPORT")
        logger.info("=" * 60)
        logger.info(
            f"Total Questions Detected: {report.total_questions_detected}"
        )
        logger.info(
            f"Structured Successfully: {report.structured_successfully} "
            f"({report.success_rate}%)"
        )
        logger.info(
            f"Questions Without Options: "
            f"{len(report.questions_without_options)}"
        )
        logger.info(
            f"Placeholder Prompts: {len(report.placeholder_prompts)}"
        )
        logger.info(
            f"Missing Question Numbers: "
            f"{len(report.missing_question_numbers)}"
        )
        if report.duplicate_question_numbers:
            logger.warning(
                f"Duplicate Question Numbers: "
                f"{report.duplicate_question_numbers}"
            )
        if report.repeated_option_keys:
            logger.warning(
                f"Repeated Option Letters In Questions: "
                f"{report.repeated_option_keys}"
            )

        if report.anomaly_breakdown:
            logger.info("Anomaly Breakdown:")
            for anomaly_type, count in sorted(
                report.anomaly_breakdown.items()
            ):
                logger.info(f"  • {anomaly_type}: {count}")

        logger.info("=" * 60)

        return report
