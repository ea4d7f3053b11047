import pytest

from keto.core.utils import parse_labels, parse_taints, setup_logger


class TestParseLabels:
    def test_parse_labels(self):
        assert parse_labels(['tier=web', ' env = prod ', 'empty=']) == {'tier': 'web', 'env': 'prod', 'empty': ''}

    def test_value_may_contain_separator(self):
        assert parse_labels(['expr=a=b']) == {'expr': 'a=b'}

    @pytest.mark.parametrize('item', ['tier', '=web', ''])
    def test_invalid_label(self, item):
        with pytest.raises(ValueError, match='expected key=value'):
            parse_labels([item])


class TestParseTaints:
    def test_parse_taints(self):
        assert parse_taints(['gpu=true:NoExecute', 'dedicated=web']) == {
            'gpu': ('true', 'NoExecute'),
            'dedicated': ('web', 'NoSchedule'),
        }

    def test_default_effect(self):
        assert parse_taints(['spot='], default_effect='PreferNoSchedule') == {'spot': ('', 'PreferNoSchedule')}

    @pytest.mark.parametrize('item', ['gpu', '=true:NoSchedule'])
    def test_invalid_taint(self, item):
        with pytest.raises(ValueError, match='expected key=value'):
            parse_taints([item])


def test_setup_logger_adds_single_handler():
    logger = setup_logger('KetoTestLogger')
    logger = setup_logger('KetoTestLogger')

    assert len(logger.handlers) == 1
    assert logger.propagate is False
