"""
Comparison report generator for ScanCompare.

Renders a comparison as a standalone HTML document.
"""

from typing import Optional

from jinja2 import Template

from scancompare.config import settings
from scancompare.models.schemas import ComparisonResponse
from scancompare.utils.logger import get_logger

logger = get_logger("report_generator")


def clamp_percentage(value: float) -> float:
    """Clamp a percentage to 0..100 for progress bars."""
    return max(0.0, min(100.0, value))


class ReportGenerator:
    """
    Generates HTML comparison reports.

    All reports include:
    - Overall change badge and percentage bar
    - Resolved, new and changed findings
    - Summary and recommendations
    - Comparative clinical insight
    - Safety disclaimer
    """

    REPORT_CSS = """
    body {
        font-family: 'Segoe UI', Tahoma, Geneva, Verdana, sans-serif;
        font-size: 11pt;
        line-height: 1.6;
        color: #333;
        max-width: 900px;
        margin: 2em auto;
    }

    .header {
        text-align: center;
        border-bottom: 2px solid #0066cc;
        padding-bottom: 20px;
        margin-bottom: 30px;
    }

    .header h1 {
        color: #0066cc;
        font-size: 24pt;
        margin: 0;
    }

    .header .subtitle {
        color: #666;
        font-size: 12pt;
        margin-top: 5px;
    }

    h2 {
        color: #0066cc;
        font-size: 14pt;
        margin-top: 25px;
        border-bottom: 1px solid #ddd;
        padding-bottom: 5px;
    }

    .badge {
        display: inline-block;
        padding: 5px 15px;
        border-radius: 15px;
        font-weight: bold;
        text-transform: uppercase;
        font-size: 10pt;
    }

    .badge-improved { background: #c8e6c9; color: #2e7d32; }
    .badge-worsened { background: #ffcdd2; color: #c62828; }
    .badge-stable { background: #e3f2fd; color: #1565c0; }

    .bar {
        background: #eee;
        border-radius: 5px;
        height: 12px;
        margin: 10px 0;
    }

    .bar-fill { height: 12px; border-radius: 5px; }
    .bar-improved { background: #4caf50; }
    .bar-worsened { background: #f44336; }
    .bar-stable { background: #2196f3; }

    .summary {
        font-size: 12pt;
        background: #e3f2fd;
        padding: 15px;
        border-radius: 5px;
        margin: 20px 0;
    }

    .findings-list {
        list-style-type: none;
        padding: 0;
    }

    .findings-list li {
        padding: 8px 0;
        border-bottom: 1px solid #eee;
    }

    .recommendations {
        background: #e8f5e9;
        padding: 15px;
        border-radius: 5px;
    }

    .insight {
        white-space: pre-wrap;
        background: #fafafa;
        border-left: 4px solid #0066cc;
        padding: 15px;
    }

    .disclaimer {
        margin-top: 40px;
        padding: 20px;
        background: #fff3e0;
        border: 1px solid #ffcc80;
        border-radius: 5px;
        font-size: 10pt;
    }

    .footer {
        margin-top: 40px;
        text-align: center;
        font-size: 9pt;
        color: #999;
        border-top: 1px solid #ddd;
        padding-top: 20px;
    }
    """

    HTML_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
    <meta charset="utf-8">
    <title>{{ title }}</title>
    <style>{{ css|safe }}</style>
</head>
<body>
    <div class="header">
        <h1>{{ title }}</h1>
        <div class="subtitle">{{ scan_type }} of {{ body_part }}</div>
        <div class="subtitle">{{ compared_date }}</div>
    </div>

    <h2>Overall Change</h2>
    <p>
        <span class="badge badge-{{ overall_change }}">{{ overall_change }}</span>
        {{ change_percentage }}%
    </p>
    <div class="bar">
        <div class="bar-fill bar-{{ overall_change }}" style="width: {{ bar_width }}%"></div>
    </div>

    <h2>Summary</h2>
    <div class="summary">{{ summary }}</div>

    {% if resolved_issues %}
    <h2>Resolved Issues ({{ resolved_issues|length }})</h2>
    <ul class="findings-list">
        {% for issue in resolved_issues %}
        <li><strong>{{ issue.area or "unspecified area" }}</strong>: {{ issue.description }}</li>
        {% endfor %}
    </ul>
    {% endif %}

    {% if new_issues %}
    <h2>New Issues ({{ new_issues|length }})</h2>
    <ul class="findings-list">
        {% for issue in new_issues %}
        <li><strong>{{ issue.area or "unspecified area" }}</strong>: {{ issue.description }}
            ({{ issue.severity.value }})</li>
        {% endfor %}
    </ul>
    {% endif %}

    {% if changed_issues %}
    <h2>Changed Areas ({{ changed_issues|length }})</h2>
    <ul class="findings-list">
        {% for issue in changed_issues %}
        <li>
            <strong>{{ issue.area or "unspecified area" }}</strong>
            <span class="badge badge-{{ issue.change.value }}">{{ issue.change.value }}</span>
            {{ issue.before.severity.value }} &rarr; {{ issue.after.severity.value }},
            {{ "%.1f"|format(issue.change_percentage) }}%
        </li>
        {% endfor %}
    </ul>
    {% endif %}

    <h2>Recommendations</h2>
    <div class="recommendations">
        <ol>
            {% for recommendation in recommendations %}
            <li>{{ recommendation }}</li>
            {% endfor %}
        </ol>
    </div>

    {% if clinical_insight %}
    <h2>Clinical Insight</h2>
    <div class="insight">{{ clinical_insight }}</div>
    {% endif %}

    <div class="disclaimer">
        <strong>Important:</strong> This comparison is generated from automated
        image analysis and templated text. It is NOT a medical diagnosis and must
        be reviewed by a qualified healthcare professional.
    </div>

    <div class="footer">
        <p>Comparison ID: {{ comparison_id }}</p>
        <p>Generated: {{ compared_date }} | {{ app_name }} v{{ version }}</p>
    </div>
</body>
</html>
"""

    def __init__(self):
        self.template = Template(self.HTML_TEMPLATE, autoescape=True)

    def generate_html(
        self,
        comparison: ComparisonResponse,
        title: Optional[str] = None
    ) -> str:
        """
        Render a comparison as HTML.

        Args:
            comparison: Comparison of two stored scans
            title: Optional custom title (defaults to settings.report_title)

        Returns:
            HTML string
        """
        html_content = self.template.render(**self._prepare_template_data(comparison, title))

        logger.info(
            "HTML report generated",
            comparison_id=comparison.comparison_id,
            size=len(html_content)
        )

        return html_content

    def _prepare_template_data(
        self,
        comparison: ComparisonResponse,
        title: Optional[str]
    ) -> dict:
        """Prepare data for template rendering."""
        result = comparison.result

        return {
            "title": title or settings.report_title,
            "css": self.REPORT_CSS,
            "app_name": settings.app_name,
            "version": settings.app_version,
            "comparison_id": comparison.comparison_id,
            "compared_date": comparison.compared_at.strftime("%B %d, %Y at %I:%M %p"),
            "scan_type": comparison.scan_type.value.upper(),
            "body_part": comparison.body_part,

            "overall_change": result.overall_change.value,
            "change_percentage": f"{result.change_percentage:.1f}",
            "bar_width": f"{clamp_percentage(result.change_percentage):.1f}",

            "summary": result.summary,
            "resolved_issues": result.resolved_issues,
            "new_issues": result.new_issues,
            "changed_issues": result.changed_issues,
            "recommendations": result.recommendations,
            "clinical_insight": result.clinical_insight,
        }


# Lazy-loaded singleton
_report_generator: Optional[ReportGenerator] = None


def get_report_generator() -> ReportGenerator:
    """Get or create report generator singleton."""
    global _report_generator
    if _report_generator is None:
        _report_generator = ReportGenerator()
    return _report_generator
