"""
PDF report for a stored yield prediction.

Sections:
1. Location & Crop
2. Prediction Summary
3. Soil Analysis
4. Weather Summary
5. Model Details & Recommendations
"""

import io
import logging
from datetime import datetime
from typing import Dict, List
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import getSampleStyleSheet, ParagraphStyle
from reportlab.lib.units import cm
from reportlab.platypus import SimpleDocTemplate, Paragraph, Spacer, Table, TableStyle

logger = logging.getLogger(__name__)

PRIMARY_COLOR = colors.HexColor('#0b6e4f')
SECONDARY_COLOR = colors.HexColor('#f2f7f4')


def _value(value, suffix: str = "") -> str:
    if value is None or value == "":
        return "N/A"
    return f"{value}{suffix}"


def _format_date(value) -> str:
    if isinstance(value, datetime):
        return value.strftime('%Y-%m-%d')
    return _value(value)


class PredictionReportGenerator:
    """Builds a PDF (as bytes) from a serialized prediction document"""

    def __init__(self):
        self.styles = getSampleStyleSheet()
        self.styles.add(ParagraphStyle(
            name='ReportTitle',
            parent=self.styles['Title'],
            fontSize=20,
            spaceAfter=6,
            textColor=PRIMARY_COLOR
        ))
        self.styles.add(ParagraphStyle(
            name='Section',
            parent=self.styles['Heading2'],
            fontSize=14,
            spaceBefore=16,
            spaceAfter=8,
            textColor=PRIMARY_COLOR
        ))
        self.styles.add(ParagraphStyle(
            name='Meta',
            parent=self.styles['Normal'],
            fontSize=9,
            textColor=colors.HexColor('#666666')
        ))

    def build(self, prediction: Dict) -> bytes:
        buffer = io.BytesIO()
        doc = SimpleDocTemplate(
            buffer,
            pagesize=A4,
            rightMargin=1.5*cm,
            leftMargin=1.5*cm,
            topMargin=1.5*cm,
            bottomMargin=1.5*cm,
            title="Crop Yield Prediction Report"
        )

        story = []
        story.extend(self._build_header(prediction))
        story.extend(self._build_location_section(prediction))
        story.extend(self._build_summary_section(prediction))
        story.extend(self._build_soil_section(prediction))
        story.extend(self._build_weather_section(prediction))
        story.extend(self._build_model_section(prediction))
        story.append(Spacer(1, 24))
        story.append(Paragraph("Generated by Crop Yield Prediction Platform", self.styles['Meta']))

        doc.build(story)
        logger.info(f"📄 Generated report for prediction {prediction.get('id')}")
        return buffer.getvalue()

    def _table(self, rows: List[List[str]]) -> Table:
        table = Table(rows, colWidths=[5*cm, 11*cm])
        table.setStyle(TableStyle([
            ('BACKGROUND', (0, 0), (-1, -1), SECONDARY_COLOR),
            ('FONTNAME', (0, 0), (0, -1), 'Helvetica-Bold'),
            ('FONTSIZE', (0, 0), (-1, -1), 10),
            ('BOTTOMPADDING', (0, 0), (-1, -1), 5),
            ('TOPPADDING', (0, 0), (-1, -1), 5),
        ]))
        return table

    def _build_header(self, p: Dict) -> List:
        return [
            Paragraph("Crop Yield Prediction Report", self.styles['ReportTitle']),
            Paragraph(f"Prediction ID: {escape(_value(p.get('id')))}", self.styles['Meta']),
            Paragraph(f"Created: {escape(_value(p.get('created_at')))}", self.styles['Meta']),
        ]

    def _build_location_section(self, p: Dict) -> List:
        location = p.get('location') or {}
        coords = location.get('coordinates') or {}
        rows = [
            ['State:', _value(location.get('state'))],
            ['District:', _value(location.get('district'))],
            ['Coordinates:', f"{_value(coords.get('lat'))}, {_value(coords.get('lon'))}"],
            ['Crop:', _value(p.get('crop_type'))],
            ['Land Area:', _value(p.get('land_area'), ' ha')],
            ['Planting Date:', _format_date(p.get('planting_date'))],
        ]
        return [Paragraph("Location &amp; Crop", self.styles['Section']), self._table(rows)]

    def _build_summary_section(self, p: Dict) -> List:
        confidence = p.get('confidence_score')
        confidence_pct = f"{round(confidence * 100)}%" if confidence is not None else "N/A"
        rows = [
            ['Predicted Yield:', _value(p.get('predicted_yield_kg'), ' kg')],
            ['Yield per Hectare:', _value(
                round(p['yield_per_hectare_kg'], 2) if p.get('yield_per_hectare_kg') is not None else None,
                ' kg/ha'
            )],
            ['ML Model Used:', 'Yes' if p.get('used_external_model') else 'No (fallback estimate)'],
            ['Confidence:', confidence_pct],
        ]
        return [Paragraph("Prediction Summary", self.styles['Section']), self._table(rows)]

    def _build_soil_section(self, p: Dict) -> List:
        soil = p.get('soil_profile') or {}
        props = soil.get('properties') or {}
        comp = soil.get('composition') or {}
        rows = [
            ['Soil Type:', _value(soil.get('soil_type') or p.get('soil_type'))],
            ['Data Source:', _value(soil.get('data_source'))],
            ['pH:', _value(props.get('ph'))],
            ['Nitrogen:', _value(props.get('nitrogen'), '%')],
            ['Organic Carbon:', _value(props.get('organic_carbon'), '%')],
            ['Fertility:', _value(props.get('fertility'))],
            ['Composition:', (
                f"Sand {_value(comp.get('sand'), '%')}, "
                f"Silt {_value(comp.get('silt'), '%')}, "
                f"Clay {_value(comp.get('clay'), '%')}"
            )],
        ]
        elements = [Paragraph("Soil Analysis", self.styles['Section']), self._table(rows)]
        for item in soil.get('recommendations') or []:
            elements.append(Paragraph(f"• {escape(str(item))}", self.styles['Normal']))
        return elements

    def _build_weather_section(self, p: Dict) -> List:
        weather = p.get('weather') or {}
        rows = [
            ['Temperature:', _value(weather.get('temperature'), ' °C')],
            ['Rainfall:', _value(weather.get('rainfall'), ' mm')],
            ['Humidity:', _value(weather.get('humidity'), '%')],
            ['Data Source:', _value(weather.get('data_source'))],
        ]
        return [Paragraph("Weather Summary", self.styles['Section']), self._table(rows)]

    def _build_model_section(self, p: Dict) -> List:
        elements = [Paragraph("ML Details &amp; Recommendations", self.styles['Section'])]
        ml_response = (p.get('external_data') or {}).get('ml_response') or {}

        if p.get('used_external_model'):
            elements.append(Paragraph(
                f"Model Version: {escape(_value(ml_response.get('model_version')))}", self.styles['Normal']
            ))
            items = ml_response.get('recommendations') or []
        else:
            elements.append(Paragraph(
                "The external model was unavailable; the analytical fallback estimate was used.",
                self.styles['Normal']
            ))
            items = []

        if not items:
            elements.append(Paragraph("No recommendations available.", self.styles['Normal']))
        for idx, item in enumerate(items, start=1):
            elements.append(Paragraph(f"{idx}. {escape(str(item))}", self.styles['Normal']))
        return elements


# Singleton instance
report_generator = PredictionReportGenerator()
