"""
Unit Tests for structured logging helpers
"""
import logging

from app.core.logging_config import JSONFormatter, logger, structured


class TestStructured:

    def test_record_attributes_prefixed(self):
        assert structured({'created': 2, 'name': 'x', 'course_id': 'c1'}) == {
            'field_created': 2,
            'field_name': 'x',
            'course_id': 'c1',
        }

    def test_plain_keys_untouched(self):
        assert structured({'updated': 1}) == {'updated': 1}


class TestDomainEvents:

    def test_created_count_does_not_clash(self, caplog):
        with caplog.at_level(logging.INFO, logger='unimanage'):
            logger.log_domain_event('Attendance', 'bulk_marked', 'course-1', created=3, updated=1)

        record = caplog.records[-1]
        assert record.getMessage() == 'Attendance bulk_marked: course-1'
        assert record.field_created == 3
        assert record.updated == 1

    def test_json_output_carries_fields(self, caplog):
        with caplog.at_level(logging.INFO, logger='unimanage'):
            logger.log_request('GET', '/api/v1/courses', 503, 12.5)

        record = caplog.records[-1]
        assert record.levelno == logging.ERROR
        assert '"http_status": 503' in JSONFormatter().format(record)
        assert '"duration_ms": 12.5' in JSONFormatter().format(record)
