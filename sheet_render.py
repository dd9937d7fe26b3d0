"""
Printable character sheet - renders a snapshot to a single HTML page.

Dependencies: pip install jinja2
"""

from pathlib import Path
from typing import Any, Dict, List, Optional, Union

from jinja2 import Environment, BaseLoader

from core import BudgetEnforcer, FormSchema, default_form_schema
from sheet_model import AllocationGroup
from snapshot_codec import SnapshotCodec


FILLED_PIP = "●"
EMPTY_PIP = "○"


class SheetRenderer:
    def __init__(self, schema: Optional[FormSchema] = None, template_path: str = None):
        self.schema = schema or default_form_schema()
        self.codec = SnapshotCodec(self.schema)
        self.enforcer = BudgetEnforcer.from_schema(self.schema)
        self.template_path = template_path
        self._template = None

    @property
    def template(self):
        if self._template is None:
            if self.template_path:
                from jinja2 import FileSystemLoader
                template_dir = Path(self.template_path).parent
                template_name = Path(self.template_path).name
                env = Environment(loader=FileSystemLoader(str(template_dir)), autoescape=True)
                self._template = env.get_template(template_name)
            else:
                env = Environment(loader=BaseLoader(), autoescape=True)
                self._template = env.from_string(DEFAULT_TEMPLATE)
        return self._template

    def _ensure_defaults(self, data: Dict[str, Any]) -> Dict[str, Any]:
        """Fill whatever the snapshot leaves out from the default sheet."""
        document = self.codec.from_snapshot(data)
        return self.codec.to_snapshot(document)

    def _group_view(self, name: str, snapshot: Dict[str, Any]) -> Dict[str, Any]:
        group_def = self.schema.group(name)
        group_data = snapshot[name]
        state = AllocationGroup.from_dict(group_data)
        stats: List[Dict[str, Any]] = []
        for stat in group_def.stats:
            value = group_data["stats"].get(stat.label, 0)
            stats.append({
                "label": stat.label,
                "value": value,
                "pips": FILLED_PIP * value + EMPTY_PIP * (stat.pips - value),
            })
        sliders = [
            {
                "left": slider.left,
                "right": slider.right,
                "value": group_data.get("sliders", {}).get(slider.key, slider.default),
                "min": slider.minimum,
                "max": slider.maximum,
            }
            for slider in group_def.sliders
        ]
        traits = [
            {"label": label, "checked": bool(group_data.get("traits", {}).get(label))}
            for label in group_def.traits
        ]
        return {
            "name": name,
            "title": name.capitalize(),
            "points": self.enforcer.display(group_def, state),
            "stats": stats,
            "sliders": sliders,
            "traits": traits,
        }

    def render_html(self, snapshot: Dict[str, Any]) -> str:
        data = self._ensure_defaults(snapshot)
        groups = [self._group_view(name, data) for name in self.schema.groups]
        return self.template.render(sheet=data, groups=groups)

    def render_blank_html(self) -> str:
        return self.render_html(self.codec.blank_snapshot())

    def save_html(self, snapshot: Dict[str, Any], output_path: Union[str, Path]) -> None:
        Path(output_path).write_text(self.render_html(snapshot), encoding="utf-8")


# Template stored in separate variable for readability
DEFAULT_TEMPLATE = '''<!DOCTYPE html>
<html>
<head>
<meta charset="UTF-8">
<title>{{ sheet.identity.get("Name") or "Character Sheet" }}</title>
<style>
@page { size: A4; margin: 0.5in; }
* { box-sizing: border-box; margin: 0; padding: 0; }
body { font-family: 'Segoe UI', Tahoma, sans-serif; font-size: 9pt; line-height: 1.3; }

.section { border: 1.5px solid #000; padding: 4px 6px; margin-bottom: 6px; }
.section-title { font-weight: bold; font-size: 8pt; text-transform: uppercase; background: #000; color: #fff; padding: 2px 5px; margin: -4px -6px 4px -6px; }
.points { float: right; font-weight: normal; }
.label { font-size: 6pt; text-transform: uppercase; color: #666; display: block; }
.value { font-size: 10pt; font-weight: bold; }

table.fixed { width: 100%; border-collapse: collapse; table-layout: fixed; }
table.fixed td { border: 1px solid #ccc; padding: 2px 3px; font-size: 8pt; }
.pips { letter-spacing: 2px; font-size: 10pt; }
.portrait { width: 120px; height: 120px; object-fit: cover; border: 1px solid #000; }
.checkbox { display: inline-block; width: 10px; height: 10px; border: 1px solid #000; text-align: center; line-height: 8px; font-size: 8pt; }
.checkbox.checked::after { content: "✓"; }
.text-area { border: 1px solid #000; padding: 4px; font-size: 8pt; white-space: pre-wrap; min-height: 35px; }
</style>
</head>
<body>

<div class="section">
  <div class="section-title">Identity</div>
  {% if sheet.portrait %}<img class="portrait" src="{{ sheet.portrait }}" alt="Portrait">{% endif %}
  <table class="fixed">
    {% for label, value in sheet.identity.items() %}
    <tr><td><span class="label">{{ label }}</span><span class="value">{{ value }}</span></td></tr>
    {% endfor %}
  </table>
</div>

{% for group in groups %}
<div class="section group-{{ group.name }}">
  <div class="section-title">{{ group.title }} <span class="points">Points {{ group.points }}</span></div>
  <table class="fixed">
    {% for stat in group.stats %}
    <tr><td>{{ stat.label }}</td><td class="pips">{{ stat.pips }}</td></tr>
    {% endfor %}
  </table>
  {% if group.sliders %}
  <table class="fixed">
    {% for slider in group.sliders %}
    <tr><td>{{ slider.left }}</td><td>{{ slider.value }} / {{ slider.max }}</td><td>{{ slider.right }}</td></tr>
    {% endfor %}
  </table>
  {% endif %}
  {% if group.traits %}
  <div>
    {% for trait in group.traits %}
    <span class="checkbox{% if trait.checked %} checked{% endif %}"></span> {{ trait.label }}
    {% endfor %}
  </div>
  {% endif %}
</div>
{% endfor %}

{% if sheet.notes %}
<div class="section">
  <div class="section-title">Notes</div>
  {% for note in sheet.notes %}
  <span class="label">{{ note.title }}</span>
  <div class="text-area">{{ note.text }}</div>
  {% endfor %}
</div>
{% endif %}

</body>
</html>
'''
