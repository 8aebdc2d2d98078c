import re
from sshbootstrap.event_log import EventLog


def test_log_event_appends_lines(tmp_path):
    log = EventLog(tmp_path / 'logs' / 'bootstrap.log')

    log.log_event('Bootstrap started')
    log.log_event('verify: failed', level='ERROR')

    lines = (tmp_path / 'logs' / 'bootstrap.log').read_text().splitlines()
    assert len(lines) == 2
    assert re.match(r'^\[\d{4}-\d{2}-\d{2} \d{2}:\d{2}:\d{2}\] INFO: Bootstrap started$', lines[0])
    assert lines[1].endswith('ERROR: verify: failed')


def test_log_event_disabled():
    EventLog(None).log_event('ignored')


def test_log_event_unwritable_warns(tmp_path, capsys):
    blocker = tmp_path / 'file'
    blocker.write_text('')
    EventLog(blocker / 'bootstrap.log').log_event('message')

    assert 'Failed to write event log' in capsys.readouterr().err
