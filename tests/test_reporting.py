import json

from awsweeper.core.models import Candidate, Outcome, OutcomeStatus, Report, ResourceDescriptor
from awsweeper.reporting import format_json, format_text, print_report, to_dict


def outcome(id_, status, type_='aws_subnet', **kwargs):
    descriptor = ResourceDescriptor(type_, id_, {'foo': 'bar'})
    return Outcome(Candidate(descriptor, 'tags'), status, **kwargs)


def sample_report(dry_run=False):
    return Report(
        dry_run=dry_run,
        outcomes=(
            outcome('subnet-2', OutcomeStatus.FAILED, reason='UnauthorizedOperation', error='denied'),
            outcome('subnet-1', OutcomeStatus.DELETED, attempts=1),
        ),
        matched={'aws_subnet': 2, 'aws_vpc': 0},
        type_errors={'aws_instance': 'AccessDenied'},
    )


def test_text_report_lists_each_resource():
    text = format_text(sample_report())

    assert text.startswith('=== AWSweeper Report ===')
    assert '    - subnet-1 [foo=bar] deleted' in text
    assert '    - subnet-2 [foo=bar] FAILED (UnauthorizedOperation): denied' in text
    assert 'ERROR listing resources: AccessDenied' in text
    assert text.endswith('Total: deleted=1 skipped=0 failed=1')


def test_text_report_dry_run_title():
    report = Report(dry_run=True, outcomes=(outcome('subnet-1', OutcomeStatus.SKIPPED, reason='dry-run'),))

    text = format_text(report)

    assert 'Dry-Run Report' in text
    assert 'skipped (dry-run)' in text


def test_text_report_empty():
    assert 'No resources matched.' in format_text(Report(dry_run=True))


def test_dict_report():
    data = to_dict(sample_report())

    assert [r['id'] for r in data['resources']] == ['subnet-1', 'subnet-2']
    assert data['types']['aws_instance']['error'] == 'AccessDenied'
    assert data['types']['aws_vpc']['matched'] == 0
    assert data['types']['aws_subnet'] == {
        'matched': 2, 'deleted': 1, 'skipped': 0, 'failed': 1, 'error': None,
    }
    assert data['resources'][1]['matched_by'] == 'tags'


def test_json_report_is_valid_json():
    assert json.loads(format_json(sample_report()))['failed'] == 1


def test_print_report(capsys):
    print_report(sample_report(), 'json')

    assert json.loads(capsys.readouterr().out)['succeeded'] == 1
