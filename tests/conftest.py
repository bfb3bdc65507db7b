"""
Pytest configuration and shared fixtures.

Key fixtures:
- contacts_html / deals_html / tasks_html: captured page markup for each view
- store: fresh in-process MemoryStore
- repository: CollectionRepository over the store

No network or database server is required; SQL store tests use a
temporary SQLite file through aiosqlite.
"""

import sys
from pathlib import Path

import pytest

# Add src to path for imports
src_path = Path(__file__).parent.parent / 'src'
sys.path.insert(0, str(src_path))

from crm_harvest.clients.memory_store import MemoryStore
from crm_harvest.repository import CollectionRepository


CONTACTS_HTML = """
<html><body>
<table class="contacts">
  <thead><tr><th>Name</th><th>Email</th><th>Phone</th><th>Owner</th></tr></thead>
  <tbody>
    <tr data-contact-id="c-101">
      <td><a href="/app/contact/101">Priya Raman</a></td>
      <td><a href="mailto:priya@example.com">priya@example.com</a></td>
      <td>+91 70275 17327</td>
      <td><span class="tag">VIP</span><span class="badge">Lead</span></td>
      <td>Alex Morgan</td>
    </tr>
    <tr data-id="c-102">
      <td>Jordan Lee</td>
      <td>jordan.lee@example.org</td>
      <td>(415) 555-0134</td>
      <td></td>
      <td><span class="owner-name">Sam Ortiz</span></td>
    </tr>
    <tr>
      <td></td>
      <td></td>
    </tr>
  </tbody>
</table>
</body></html>
"""

DEALS_HTML = """
<html><body>
<div class="board" data-pipeline-name="Enterprise">
  <div class="column" data-stage-name="Proposal">
    <div class="deal-card" data-deal-id="d-1">
      <h3>Acme Expansion</h3>
      <span class="amount">$12,500.00</span>
      <a class="contact-link" href="/app/contact/101">Priya Raman</a>
      <span class="owner">Alex Morgan</span>
    </div>
    <div class="deal-card" data-deal-id="d-2">
      <h3>Globex Renewal</h3>
      <span class="amount">$0</span>
    </div>
    <div class="deal-card" data-deal-id="d-3">
      <span class="amount">$4,000</span>
    </div>
  </div>
</div>
</body></html>
"""

TASKS_HTML = """
<html><body>
<table>
  <tbody>
    <tr data-task-id="t-1">
      <td><input type="checkbox"></td>
      <td>Call about renewal</td>
      <td>2 hours ago</td>
      <td><a href="/app/contact/101">Priya Raman</a></td>
      <td>Incomplete</td>
    </tr>
    <tr data-task-id="t-2">
      <td><input type="checkbox"></td>
      <td>Send pricing email</td>
      <td>Jordan Lee</td>
      <td>2024-03-18</td>
      <td><a href="/app/deal/7">Globex Renewal</a></td>
    </tr>
    <tr data-task-id="t-3">
      <td><input type="checkbox"></td>
      <td>Call about renewal</td>
      <td>Mar 20</td>
      <td>Priya Raman</td>
      <td>Incomplete</td>
    </tr>
    <tr>
      <td>Settings</td>
    </tr>
  </tbody>
</table>
</body></html>
"""


@pytest.fixture
def contacts_html() -> str:
    return CONTACTS_HTML


@pytest.fixture
def deals_html() -> str:
    return DEALS_HTML


@pytest.fixture
def tasks_html() -> str:
    return TASKS_HTML


@pytest.fixture
def store() -> MemoryStore:
    """Fresh in-process store."""
    return MemoryStore()


@pytest.fixture
def repository(store: MemoryStore) -> CollectionRepository:
    """Repository over the in-process store."""
    return CollectionRepository(store)
