"""
Tests for the fallback-chain runner, individual strategies and field chains.

Run with: pytest tests/test_resolvers.py -v
"""

import re

import pytest
from bs4 import BeautifulSoup

from crm_harvest.pipeline.fields import (
    CONTACT_FIELDS,
    DEAL_FIELDS,
    PHONE_PATTERNS,
    TASK_FIELDS,
    parse_amount,
)
from crm_harvest.pipeline.resolvers import (
    Attribute,
    CellPattern,
    ClosestAttribute,
    Computed,
    FieldRef,
    FieldSpec,
    ResolveContext,
    SelectAttribute,
    SelectText,
    TextPattern,
    resolve_chain,
    resolve_fields,
)


def _element(html: str, selector: str = 'tr'):
    return BeautifulSoup(html, 'html.parser').select_one(selector)


def _ctx(position: int = 0) -> ResolveContext:
    return ResolveContext(position=position, timestamp_ms=1700000000000)


# =============================================================================
# Chain Runner
# =============================================================================


class TestResolveChain:
    """First non-empty strategy result wins."""

    def test_first_non_empty_wins(self):
        element = _element('<tr data-id="x-1" id="row-1"><td>a</td></tr>')
        chain = (Attribute('data-contact-id'), Attribute('data-id'), Attribute('id'))
        assert resolve_chain(chain, element, _ctx()) == 'x-1'

    def test_empty_string_falls_through(self):
        element = _element('<tr data-id="" id="row-1"><td>a</td></tr>')
        chain = (Attribute('data-id'), Attribute('id'))
        assert resolve_chain(chain, element, _ctx()) == 'row-1'

    def test_default_when_nothing_resolves(self):
        element = _element('<tr><td>a</td></tr>')
        assert resolve_chain((Attribute('data-id'),), element, _ctx(), default='none') == 'none'

    def test_later_strategies_not_called(self):
        element = _element('<tr data-id="x"><td>a</td></tr>')
        calls = []

        def spy(el, ctx):
            calls.append(1)
            return 'y'

        assert resolve_chain((Attribute('data-id'), Computed(spy)), element, _ctx()) == 'x'
        assert calls == []

    def test_resolve_fields_exposes_earlier_fields(self):
        element = _element('<tr><td>a</td></tr>')
        specs = (
            FieldSpec('first', (Computed(lambda el, ctx: 'one'),)),
            FieldSpec('second', (FieldRef('first'),)),
        )
        assert resolve_fields(specs, element, _ctx()) == {'first': 'one', 'second': 'one'}


# =============================================================================
# Strategies
# =============================================================================


class TestStrategies:
    def test_select_text_trims(self):
        element = _element('<tr><td><a href="/contact/1">  Ana  </a></td></tr>')
        assert SelectText('a').resolve(element, _ctx()) == 'Ana'

    def test_select_attribute_strips_prefix(self):
        element = _element('<tr><td><a href="mailto:ana@example.com">mail</a></td></tr>')
        strategy = SelectAttribute('a[href^="mailto:"]', 'href', strip_prefix='mailto:')
        assert strategy.resolve(element, _ctx()) == 'ana@example.com'

    def test_closest_attribute_reads_ancestor(self):
        html = '<div data-stage-name="Won"><div class="card" id="c"></div></div>'
        element = _element(html, '#c')
        assert ClosestAttribute('[data-stage-name]', 'data-stage-name').resolve(element, _ctx()) == 'Won'

    def test_closest_attribute_missing(self):
        element = _element('<div><div class="card" id="c"></div></div>', '#c')
        assert ClosestAttribute('[data-stage-name]', 'data-stage-name').resolve(element, _ctx()) is None

    def test_text_pattern_priority_order(self):
        element = _element('<tr><td>ref 1234567890 or +91 70275 17327</td></tr>')
        assert TextPattern(PHONE_PATTERNS).resolve(element, _ctx()) == '+91 70275 17327'

    def test_cell_pattern_whole_cell(self):
        element = _element('<tr><td>none</td><td>due Mar 3</td></tr>')
        strategy = CellPattern((re.compile(r'Mar\s+\d+'),), whole_cell=True)
        assert strategy.resolve(element, _ctx()) == 'due Mar 3'


# =============================================================================
# Contact Fields
# =============================================================================


class TestContactFields:
    def test_phone_international_spaced_wins(self):
        """The international-spaced shape beats the bare-digit fallback."""
        element = _element(
            '<tr><td>Ravi</td><td>+91 70275 17327 contact</td><td>x</td></tr>'
        )
        fields = resolve_fields(CONTACT_FIELDS, element, _ctx())
        assert fields['phone'] == '+91 70275 17327'

    def test_phone_from_tel_link(self):
        element = _element('<tr><td><a href="tel:+15550100">555-0100</a></td></tr>')
        fields = resolve_fields(CONTACT_FIELDS, element, _ctx())
        assert fields['phone'] == '555-0100'

    def test_phone_ignores_non_ascii_digits(self):
        """Only ASCII digits form phone numbers."""
        digits = '\u0667\u0660\u0662\u0667\u0665\u0661\u0667\u0663\u0662\u0667'
        element = _element(f'<tr><td>Ana</td><td>{digits}</td></tr>')
        fields = resolve_fields(CONTACT_FIELDS, element, _ctx())
        assert fields['phone'] == ''

    def test_phone_text_fallback_uses_priority_order(self):
        """Without cells, a higher-priority shape wins even when it appears later."""
        element = _element('<div>Desk 555-123-4567, mobile +91 70275 17327</div>', 'div')
        fields = resolve_fields(CONTACT_FIELDS, element, _ctx())
        assert fields['phone'] == '+91 70275 17327'

    def test_phone_first_matching_cell_wins(self):
        element = _element('<tr><td>Ana</td><td>(212) 555-0199</td><td>+44 20794 60958</td></tr>')
        fields = resolve_fields(CONTACT_FIELDS, element, _ctx())
        assert fields['phone'] == '(212) 555-0199'

    def test_name_skips_email_and_numeric_cells(self):
        element = _element(
            '<tr><td>42</td> <td>ana@example.com</td> <td>Ana Silva</td> <td>Owner X</td></tr>'
        )
        fields = resolve_fields(CONTACT_FIELDS, element, _ctx())
        assert fields['name'] == 'Ana Silva'
        assert fields['email'] == 'ana@example.com'

    def test_name_only_from_first_three_cells(self):
        element = _element('<tr><td>1</td><td>2</td><td>3</td><td>Late Name</td></tr>')
        fields = resolve_fields(CONTACT_FIELDS, element, _ctx())
        assert fields['name'] == ''

    def test_fallback_id_is_positional(self):
        element = _element('<tr><td>Ana</td></tr>')
        fields = resolve_fields(CONTACT_FIELDS, element, _ctx(position=4))
        assert fields['id'] == 'contact-4-1700000000000'

    def test_owner_falls_back_to_short_last_cell(self):
        element = _element('<tr><td>Ana</td><td>Sam</td></tr>')
        assert resolve_fields(CONTACT_FIELDS, element, _ctx())['owner'] == 'Sam'

    def test_owner_ignores_long_last_cell(self):
        element = _element(f'<tr><td>Ana</td><td>{"x" * 60}</td></tr>')
        assert resolve_fields(CONTACT_FIELDS, element, _ctx())['owner'] == ''

    def test_tags_in_order_without_empties(self):
        element = _element(
            '<tr><td><span class="badge">Hot</span><span class="tag"> </span>'
            '<span class="label">Q3</span></td></tr>'
        )
        assert resolve_fields(CONTACT_FIELDS, element, _ctx())['tags'] == ['Hot', 'Q3']


# =============================================================================
# Deal Fields
# =============================================================================


class TestDealFields:
    def test_value_parsed_from_currency(self):
        element = _element('<div class="card"><h4>Big</h4> $1,250,000.50 </div>', 'div')
        fields = resolve_fields(DEAL_FIELDS, element, _ctx())
        assert fields['title'] == 'Big'
        assert fields['value'] == 1250000.5

    def test_value_defaults_to_zero(self):
        element = _element('<div class="card"><h4>Big</h4></div>', 'div')
        assert resolve_fields(DEAL_FIELDS, element, _ctx())['value'] == 0.0

    @pytest.mark.parametrize(
        'text,expected',
        [('$12,500', 12500.0), ('$7.5', 7.5), ('', 0.0), ('$', 0.0)],
    )
    def test_parse_amount(self, text, expected):
        assert parse_amount(text) == expected

    def test_stage_prefers_descendant_marker(self):
        html = (
            '<div data-stage-name="Lead"><div class="deal-card" id="d">'
            '<span class="stage-pill">Negotiation</span></div></div>'
        )
        element = _element(html, '#d')
        assert resolve_fields(DEAL_FIELDS, element, _ctx())['stage'] == 'Negotiation'

    def test_fallback_id(self):
        element = _element('<div class="deal-card"><h3>T</h3></div>', 'div')
        assert resolve_fields(DEAL_FIELDS, element, _ctx(2))['id'] == 'deal-2-1700000000000'


# =============================================================================
# Task Fields
# =============================================================================


class TestTaskFields:
    def test_type_from_badge_before_title(self):
        element = _element(
            '<tr><td><span class="badge">Meeting</span></td><td>Call prep</td></tr>'
        )
        fields = resolve_fields(TASK_FIELDS, element, _ctx())
        assert fields['title'] == 'Call prep'
        assert fields['type'] == 'meeting'

    def test_type_priority_call_before_email(self):
        element = _element('<tr><td></td><td>Email then call back</td></tr>')
        assert resolve_fields(TASK_FIELDS, element, _ctx())['type'] == 'call'

    def test_type_other(self):
        element = _element('<tr><td></td><td>Prepare contract</td></tr>')
        assert resolve_fields(TASK_FIELDS, element, _ctx())['type'] == 'other'

    def test_due_relative_time(self):
        element = _element('<tr><td></td><td>Follow up</td><td>23 minutes ago</td></tr>')
        assert resolve_fields(TASK_FIELDS, element, _ctx())['due'] == '23 minutes ago'

    def test_assignee_skips_title_time_and_status(self):
        element = _element(
            '<tr><td>x</td><td>Follow up</td><td>3 hours ago</td>'
            '<td>Complete</td><td>Dana Cruz</td></tr>'
        )
        fields = resolve_fields(TASK_FIELDS, element, _ctx())
        assert fields['assignee'] == 'Dana Cruz'
        assert fields['linkedTo'] == 'Dana Cruz'

    def test_linked_to_prefers_deal_link(self):
        element = _element(
            '<tr><td></td><td>Follow up</td><td><a href="/contact/2">Dana</a></td>'
            '<td><a href="/deal/9">Globex</a></td></tr>'
        )
        fields = resolve_fields(TASK_FIELDS, element, _ctx())
        assert fields['assignee'] == 'Dana'
        assert fields['linkedTo'] == 'Globex'

    def test_fallback_id_uses_title_and_position(self):
        element = _element('<tr><td></td><td>Follow up call</td></tr>')
        fields = resolve_fields(TASK_FIELDS, element, _ctx(position=4))
        assert fields['id'] == 'task-Follow-up-call-4-1700000000000'

    def test_same_title_rows_get_distinct_fallback_ids(self):
        element = _element('<tr><td></td><td>Follow up call</td></tr>')
        first = resolve_fields(TASK_FIELDS, element, _ctx(position=0))
        second = resolve_fields(TASK_FIELDS, element, _ctx(position=1))
        assert first['id'] != second['id']

    def test_due_ignores_non_ascii_digits(self):
        element = _element(
            '<tr><td></td><td>Follow up</td><td>\u0662\u0660\u0662\u0664-\u0660\u0663-\u0661\u0668</td></tr>'
        )
        fields = resolve_fields(TASK_FIELDS, element, _ctx())
        assert fields['due'] == ''
