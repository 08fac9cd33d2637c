#!/usr/bin/env python3
"""Command-line interface for grading one exam attempt."""

import argparse
import asyncio
import logging
import sys
from pathlib import Path

import yaml

from examgrade.libs.config_loader import load_all_configs
from .ai_client import UnavailableCompletionClient, create_grading_client
from .attempt_loader import load_exam_and_attempt
from .exceptions import AttemptLoadError
from .orchestrator import ChunkedGradingOrchestrator
from .review import grade_attempt_with_status, needs_regrade

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)
LOG = logging.getLogger(__name__)


def main():
    """Main entry point for grade-attempt command."""
    parser = argparse.ArgumentParser(
        description='Grade a completed exam attempt',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Grade an attempt and print the result
  grade-attempt --exam exam.yaml --attempt attempt.yaml

  # Save the graded attempt
  grade-attempt --exam exam.yaml --attempt attempt.yaml --output graded.yaml

  # Grade without calling the AI service (keyword grading only)
  grade-attempt --exam exam.yaml --attempt attempt.yaml --no-ai
        """
    )

    parser.add_argument(
        '--exam', '-e',
        type=Path,
        required=True,
        help='Exam definition (YAML or JSON)'
    )
    parser.add_argument(
        '--attempt', '-a',
        type=Path,
        required=True,
        help='Student attempt (YAML or JSON)'
    )
    parser.add_argument(
        '--output', '-o',
        type=Path,
        default=None,
        help='Where to write the graded attempt (default: stdout)'
    )
    parser.add_argument(
        '--model', '-m',
        type=str,
        default=None,
        help='OpenAI model to use (overrides config value)'
    )
    parser.add_argument(
        '--no-ai',
        action='store_true',
        help='Skip the AI service and use keyword grading for open-ended answers'
    )
    parser.add_argument(
        '--verbose', '-v',
        action='store_true',
        help='Enable verbose logging'
    )

    args = parser.parse_args()

    if args.verbose:
        logging.getLogger().setLevel(logging.DEBUG)

    try:
        exam, attempt = load_exam_and_attempt(args.exam, args.attempt)
    except AttemptLoadError as e:
        LOG.error(f"Failed to load exam attempt: {e}")
        sys.exit(1)

    try:
        config = load_all_configs()
        if args.no_ai:
            client = UnavailableCompletionClient()
        else:
            client = create_grading_client(config, model=args.model)
        orchestrator = ChunkedGradingOrchestrator.from_config(config, client, show_progress=True)
    except Exception as e:
        LOG.error(f"Failed to initialize grader: {e}")
        sys.exit(1)

    summary = asyncio.run(grade_attempt_with_status(orchestrator, attempt, exam))

    output = {
        'attempt': attempt.id,
        'student_id': attempt.student_id,
        'ai_grading_status': attempt.ai_grading_status.value,
        'needs_regrade': needs_regrade(attempt),
        'summary': summary.to_dict(),
        'answers': [answer.to_yaml_dict() for answer in attempt.answers],
    }

    if args.output:
        with open(args.output, 'w') as f:
            yaml.dump(output, f, default_flow_style=False, sort_keys=False)
        LOG.info(f"Graded attempt saved to {args.output}")
    else:
        yaml.dump(output, sys.stdout, default_flow_style=False, sort_keys=False)

    print(f"\nScore: {summary.total_score:g}/{summary.max_possible_score:g} "
          f"({summary.percentage:.1f}%)", file=sys.stderr)


if __name__ == "__main__":
    main()
