# app/transfers/exports.py

import io
from datetime import datetime

import pandas as pd
import pytz
from docx import Document
from flask import current_app
from reportlab.lib import colors
from reportlab.lib.pagesizes import landscape, letter
from reportlab.lib.styles import getSampleStyleSheet
from reportlab.platypus import SimpleDocTemplate, Table, TableStyle, Paragraph

COLUMNS = ['Date', 'Product', 'Quantity', 'From', 'To', 'Lot', 'Requested By', 'Notes']

MIMETYPES = {
    'xlsx': 'application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
    'pdf': 'application/pdf',
    'docx': 'application/vnd.openxmlformats-officedocument.wordprocessingml.document',
}


def format_timestamp(timestamp):
    """Convert a naive UTC timestamp to the configured local timezone."""
    local_tz = pytz.timezone(current_app.config.get('TIMEZONE', 'UTC'))
    return pytz.utc.localize(timestamp).astimezone(local_tz)


def transfer_rows(transfers):
    """Flatten transfer records into export rows keyed by ``COLUMNS``."""
    rows = []
    for transfer in transfers:
        rows.append({
            'Date': format_timestamp(transfer.transfer_date).strftime('%Y-%m-%d %H:%M'),
            'Product': transfer.product.name,
            'Quantity': f"{transfer.quantity} {transfer.product.unit}",
            'From': transfer.from_location.name,
            'To': transfer.to_location.name,
            'Lot': (f"#{transfer.source_lot.lot_number} -> "
                    f"#{transfer.destination_lot.lot_number if transfer.destination_lot else '?'}"),
            'Requested By': transfer.requester.username if transfer.requester else '',
            'Notes': transfer.notes or ''
        })
    return rows


def generate_excel(rows):
    """Generate the transfer history as an Excel stream."""
    output = io.BytesIO()
    with pd.ExcelWriter(output, engine='xlsxwriter') as writer:
        df = pd.DataFrame(rows, columns=COLUMNS)
        df.to_excel(writer, sheet_name='Transfers', index=False)
        workbook = writer.book
        worksheet = writer.sheets['Transfers']

        header_format = workbook.add_format({
            'bold': True,
            'bg_color': '#4F81BD',
            'font_color': 'white',
            'border': 1
        })

        for col_num, value in enumerate(df.columns.values):
            worksheet.write(0, col_num, value, header_format)
            longest = df[value].astype(str).apply(len).max() if len(df) else 0
            worksheet.set_column(col_num, col_num, max(longest, len(value)) + 2)

    output.seek(0)
    return output


def generate_pdf(rows, title='Stock Transfer History'):
    """Generate the transfer history as a PDF stream."""
    buffer = io.BytesIO()

    doc = SimpleDocTemplate(
        buffer,
        pagesize=landscape(letter),
        rightMargin=36,
        leftMargin=36,
        topMargin=48,
        bottomMargin=48
    )

    styles = getSampleStyleSheet()
    timestamp = format_timestamp(datetime.utcnow())
    elements = [
        Paragraph(title, styles['Title']),
        Paragraph(f"Generated on: {timestamp.strftime('%Y-%m-%d %H:%M')}", styles['Normal']),
    ]

    table_data = [COLUMNS] + [[str(row[col]) for col in COLUMNS] for row in rows]
    table = Table(table_data, repeatRows=1)
    table.setStyle(TableStyle([
        ('BACKGROUND', (0, 0), (-1, 0), colors.grey),
        ('TEXTCOLOR', (0, 0), (-1, 0), colors.whitesmoke),
        ('FONTNAME', (0, 0), (-1, 0), 'Helvetica-Bold'),
        ('FONTSIZE', (0, 0), (-1, 0), 10),
        ('BOTTOMPADDING', (0, 0), (-1, 0), 12),
        ('FONTNAME', (0, 1), (-1, -1), 'Helvetica'),
        ('FONTSIZE', (0, 1), (-1, -1), 8),
        ('GRID', (0, 0), (-1, -1), 1, colors.black),
        ('ALIGN', (0, 0), (-1, -1), 'CENTER'),
    ]))
    elements.append(table)

    doc.build(elements)
    buffer.seek(0)
    return buffer


def generate_word(rows, title='Stock Transfer History'):
    """Generate the transfer history as a Word document stream."""
    doc = Document()
    doc.add_heading(title, 0)

    timestamp = format_timestamp(datetime.utcnow())
    doc.add_paragraph(f"Generated on: {timestamp.strftime('%Y-%m-%d %H:%M')}")

    table = doc.add_table(rows=1, cols=len(COLUMNS))
    table.style = 'Table Grid'
    for i, header in enumerate(COLUMNS):
        table.rows[0].cells[i].text = header

    for row in rows:
        cells = table.add_row().cells
        for i, col in enumerate(COLUMNS):
            cells[i].text = str(row[col])

    buffer = io.BytesIO()
    doc.save(buffer)
    buffer.seek(0)
    return buffer


GENERATORS = {
    'xlsx': generate_excel,
    'pdf': generate_pdf,
    'docx': generate_word,
}
