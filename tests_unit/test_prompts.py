"""
Tests for the interactive master data and header prompts.
"""

from decimal import Decimal
from io import StringIO
from unittest.mock import MagicMock, patch

import pytest
from rich.console import Console

from cli.exceptions import UserCancelledError, ValidationError as CLIValidationError
from cli.prompts import HeaderWizard, MasterDataPrompt, resolve_missing_interactively
from document.header import HeaderData
from processing.models import MergedItem


def quiet_console():
    return Console(file=StringIO())


class TestMasterDataPrompt:

    def setup_method(self):
        self.prompt = MasterDataPrompt(console=quiet_console())

    @patch('cli.prompts.Confirm.ask', return_value=True)
    @patch('cli.prompts.Prompt.ask', return_value='doz')
    @patch('cli.prompts.IntPrompt.ask', return_value=24)
    @patch('cli.prompts.FloatPrompt.ask', side_effect=[0.1, 9.8])
    def test_prompt_for_record(self, float_ask, int_ask, prompt_ask, confirm_ask):
        record = self.prompt.prompt_for_record('210013-010')

        assert record.product_code == '210013-010'
        assert record.carton_weight == 9.8
        assert record.units_per_carton == 24
        assert record.unit_of_measure == 'DOZ'

    @patch('cli.prompts.Confirm.ask', side_effect=[False, True])
    @patch('cli.prompts.Prompt.ask', return_value='NO')
    @patch('cli.prompts.IntPrompt.ask', side_effect=[10, 12])
    @patch('cli.prompts.FloatPrompt.ask', side_effect=[0.0, 5.0, 0.0, 6.0])
    def test_declined_record_is_asked_again(self, float_ask, int_ask, prompt_ask, confirm_ask):
        record = self.prompt.prompt_for_record('40858')
        assert record.units_per_carton == 12
        assert record.carton_weight == 6.0

    @patch('cli.prompts.FloatPrompt.ask')
    def test_unstorable_code_is_not_prompted(self, float_ask):
        with pytest.raises(CLIValidationError, match='bad code'):
            self.prompt.prompt_for_record('bad code')
        float_ask.assert_not_called()

    @patch('cli.prompts.Confirm.ask', return_value=True)
    @patch('cli.prompts.Prompt.ask', return_value='X')
    @patch('cli.prompts.IntPrompt.ask', return_value=10)
    @patch('cli.prompts.FloatPrompt.ask', side_effect=[0.2, 4.0])
    def test_code_with_slash(self, float_ask, int_ask, prompt_ask, confirm_ask):
        assert self.prompt.prompt_for_record('AB/12').product_code == 'AB/12'

    @patch('cli.prompts.FloatPrompt.ask', side_effect=KeyboardInterrupt)
    def test_interrupt_cancels(self, float_ask):
        with pytest.raises(UserCancelledError):
            self.prompt.prompt_for_record('40858')


class TestHeaderWizard:

    def test_collect_uses_answers(self):
        wizard = HeaderWizard(console=quiet_console())

        def answer(label, **kwargs):
            if 'choices' in kwargs:
                return kwargs['default']
            return kwargs.get('default') or f"<{label}>"

        with patch('cli.prompts.Prompt.ask', side_effect=answer):
            header = wizard.collect(defaults=HeaderData(so_number='4521', ship_mode='Ocean'))

        assert header.so_number == '4521'
        assert header.ship_mode == 'Ocean'
        assert header.hazardous == 'NO'
        assert header.forwarder_name == '<Forwarder name>'


class TestResolveMissingInteractively:

    def test_every_code_is_stored(self):
        prompt = MagicMock()
        prompt.prompt_for_record.side_effect = lambda code: f"record-{code}"
        resolver = MagicMock()
        merged = [MergedItem(1, 'A', 'US', Decimal('1'), Decimal('1'), 'A', '1000.00.0000')]

        stored = resolve_missing_interactively(resolver, ['A', 'B'], merged, session_id='s1', prompt=prompt)

        assert stored == 2
        prompt.show_missing.assert_called_once_with(['A', 'B'], merged)
        assert resolver.resolve.call_count == 2
        resolver.resolve.assert_any_call('record-B', session_id='s1', notes='entered interactively')
