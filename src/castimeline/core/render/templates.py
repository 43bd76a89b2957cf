"""Jinja2 markup for the timeline list.

The environment autoescapes, so titles, summaries and URLs coming from the
dataset are always escaped; only the fixed icon snippets are marked safe.
"""

from __future__ import annotations

from collections.abc import Sequence

from jinja2 import Environment
from markupsafe import Markup

from .cards import YearGroup

_env = Environment(autoescape=True, trim_blocks=True, lstrip_blocks=True)

_ICON = '<svg aria-hidden="true"><use href="assets/icons.svg#icon-{name}"></use></svg>'
ICONS: dict[str, Markup] = {
    "leaf": Markup(_ICON.format(name="leaf")),
    "image": Markup(_ICON.format(name="image")),
    "video": Markup(_ICON.format(name="play")),
    "link": Markup(_ICON.format(name="link")),
}

TIMELINE_TEMPLATE = _env.from_string(
    """\
{% for group in groups %}
<li class="timeline-year-group" data-year-group="{{ group.label }}">
  <div class="year-header" data-year-header="{{ group.label }}" role="heading" aria-level="2">{{ group.label }}</div>
  <ol class="timeline-cards" role="list">
  {% for card in group.cards %}
    <li role="listitem" data-year="{{ card.year_label }}">
      <article class="timeline-card{% if entering %} fade-scale-enter{% endif %}" data-id="{{ card.id }}" data-year="{{ card.year_label }}" data-sustainability="{{ 'true' if card.sustainability else 'false' }}" data-deletable="{{ 'true' if card.deletable else 'false' }}" role="group" tabindex="0" style="--category-color: {{ card.color }}">
        <h3>{{ card.title }}</h3>
        <div class="card-meta"><span>{{ card.date_label }}</span>{% if card.sustainability %}<span class="leaf-icon">{{ icons.leaf }}</span>{% endif %}</div>
        <p>{{ card.summary }}</p>
        {% if card.categories %}
        <div class="media-chips">{% for cat in card.categories %}<span class="category-chip">{{ cat }}</span>{% endfor %}</div>
        {% endif %}
        {% if card.media or card.overflow %}
        <div class="media-chips media-indicators">{% for chip in card.media %}<a class="media-chip" href="{{ chip.url }}" target="_blank" rel="noopener" role="button">{{ icons[chip.kind] }}{{ chip.label }}</a>{% endfor %}{% if card.overflow %}<span class="media-chip media-chip-static">+{{ card.overflow }}</span>{% endif %}</div>
        {% endif %}
        {% if card.deletable %}
        <button type="button" class="delete-btn" data-id="{{ card.id }}">&times;</button>
        {% endif %}
      </article>
    </li>
  {% endfor %}
  </ol>
</li>
{% endfor %}
"""
)

EMPTY_STATE_HTML = Markup('<p class="empty-state">No events match these filters yet.</p>')


def render_groups_html(groups: Sequence[YearGroup], *, entering: bool = False) -> str:
    """Render year groups to the list markup."""
    return TIMELINE_TEMPLATE.render(groups=groups, icons=ICONS, entering=entering)


__all__ = ["EMPTY_STATE_HTML", "ICONS", "render_groups_html"]
