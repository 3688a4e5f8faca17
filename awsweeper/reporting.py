"""Human and machine readable report output."""
import json

from awsweeper.core.models import Outcome, OutcomeStatus, Report


def _tags(outcome: Outcome) -> str:
    tags = outcome.candidate.descriptor.tags
    return ', '.join(f"{k}={v}" for k, v in sorted(tags.items())) or '-'


def _result(outcome: Outcome) -> str:
    if outcome.status is OutcomeStatus.DELETED:
        return 'already absent' if outcome.already_absent else 'deleted'
    if outcome.status is OutcomeStatus.SKIPPED:
        return f"skipped ({outcome.reason})"
    return f"FAILED ({outcome.reason}): {outcome.error}"


def format_text(report: Report) -> str:
    title = 'AWSweeper Dry-Run Report' if report.dry_run else 'AWSweeper Report'
    lines = [f"=== {title} ==="]
    summary = report.by_type()
    if not summary:
        lines.append('\nNo resources matched.')
    for resource_type, counts in summary.items():
        lines.append(f"\nResource: {resource_type}")
        lines.append(f"  matched={counts.matched} deleted={counts.deleted} "
                     f"skipped={counts.skipped} failed={counts.failed}")
        if resource_type in report.type_errors:
            lines.append(f"  ERROR listing resources: {report.type_errors[resource_type]}")
        for o in report.outcomes:
            if o.type == resource_type:
                lines.append(f"    - {o.id} [{_tags(o)}] {_result(o)}")
    lines.append('')
    lines.append(f"Total: deleted={report.succeeded} skipped={report.skipped} failed={report.failed}"
                 + (' (cancelled)' if report.cancelled else ''))
    return '\n'.join(lines)


def to_dict(report: Report) -> dict:
    return {
        'dry_run': report.dry_run,
        'cancelled': report.cancelled,
        'succeeded': report.succeeded,
        'failed': report.failed,
        'skipped': report.skipped,
        'types': {
            t: {'matched': s.matched, 'deleted': s.deleted, 'skipped': s.skipped, 'failed': s.failed,
                'error': report.type_errors.get(t)}
            for t, s in report.by_type().items()
        },
        'resources': [
            {
                'type': o.type,
                'id': o.id,
                'name': o.candidate.descriptor.name,
                'tags': dict(o.candidate.descriptor.tags),
                'matched_by': o.candidate.matched_by,
                'outcome': o.status.value,
                'reason': o.reason,
                'error': o.error,
                'retryable': o.retryable,
                'already_absent': o.already_absent,
                'attempts': o.attempts,
            }
            for o in report.outcomes
        ],
    }


def format_json(report: Report) -> str:
    return json.dumps(to_dict(report), indent=2, sort_keys=True)


def print_report(report: Report, output: str = 'text'):
    print(format_json(report) if output == 'json' else format_text(report))
