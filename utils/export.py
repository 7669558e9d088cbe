"""
utils/export.py — Excel export of a garden's beds and planting history using openpyxl.

Generates one .xlsx file per garden:
- One sheet per bed laid out as its grid; each occupied cell shows the
  plant name and is filled with its family colour
- A "History" sheet listing every planting: Area, Bed, Row, Column,
  Plant, Family, Planted, Harvested
"""

import re
from io import BytesIO

import openpyxl
from openpyxl.styles import Font, PatternFill, Alignment, Border, Side
from openpyxl.utils import get_column_letter


# Family colors for occupied cells
FAMILY_FILLS = {
    'Solanaceae': PatternFill(start_color='D32F2F', end_color='D32F2F', fill_type='solid'),
    'Cucurbitaceae': PatternFill(start_color='FFB300', end_color='FFB300', fill_type='solid'),
    'Asteraceae': PatternFill(start_color='7B1FA2', end_color='7B1FA2', fill_type='solid'),
    'Apiaceae': PatternFill(start_color='F57C00', end_color='F57C00', fill_type='solid'),
    'Lamiaceae': PatternFill(start_color='4CAF50', end_color='4CAF50', fill_type='solid'),
    'Brassicaceae': PatternFill(start_color='00897B', end_color='00897B', fill_type='solid'),
    'Fabaceae': PatternFill(start_color='6D4C41', end_color='6D4C41', fill_type='solid'),
}
DEFAULT_FAMILY_FILL = PatternFill(start_color='546E7A', end_color='546E7A', fill_type='solid')

HEADER_FONT = Font(name='Calibri', bold=True, color='FFFFFF', size=11)
HEADER_FILL = PatternFill(start_color='1565C0', end_color='1565C0', fill_type='solid')
HEADER_ALIGNMENT = Alignment(horizontal='center', vertical='center', wrap_text=True)
CELL_ALIGNMENT = Alignment(horizontal='center', vertical='center', wrap_text=True)
CELL_BORDER = Border(
    left=Side(style='thin', color='B0BEC5'),
    right=Side(style='thin', color='B0BEC5'),
    top=Side(style='thin', color='B0BEC5'),
    bottom=Side(style='thin', color='B0BEC5'),
)

HISTORY_COLUMNS = ['Area', 'Bed', 'Row', 'Column', 'Plant', 'Family', 'Planted', 'Harvested']


def sheet_title(name, used):
    """Excel-safe unique sheet title (max 31 chars, no []:*?/\\)."""
    base = re.sub(r'[\[\]:*?/\\]', '-', name or 'Bed').strip() or 'Bed'
    base = base[:31]
    title = base
    n = 2
    while title in used:
        suffix = f' ({n})'
        title = base[:31 - len(suffix)] + suffix
        n += 1
    used.add(title)
    return title


def _style_header(cell):
    cell.font = HEADER_FONT
    cell.fill = HEADER_FILL
    cell.alignment = HEADER_ALIGNMENT
    cell.border = CELL_BORDER


def _build_bed_sheet(ws, bed, cells, plant_names):
    """Grid sheet: column headers C0..Cn, row headers R0..Rn."""
    for c in range(bed.grid_columns):
        _style_header(ws.cell(row=1, column=c + 2, value=f'C{c}'))
    for r in range(bed.grid_rows):
        _style_header(ws.cell(row=r + 2, column=1, value=f'R{r}'))

    for cell in cells:
        target = ws.cell(row=cell.row + 2, column=cell.column + 2)
        target.border = CELL_BORDER
        target.alignment = CELL_ALIGNMENT
        if not cell.is_occupied:
            continue
        target.value = plant_names.get(cell.current_plant_id, cell.current_plant_id)
        entry = cell.open_entry
        family = entry.plant_family if entry else ''
        target.fill = FAMILY_FILLS.get(family, DEFAULT_FAMILY_FILL)
        target.font = Font(color='FFFFFF', bold=True)

    ws.column_dimensions['A'].width = 6
    for c in range(bed.grid_columns):
        ws.column_dimensions[get_column_letter(c + 2)].width = 14
    ws.freeze_panes = 'B2'


def _build_history_sheet(ws, rows):
    for col_idx, col_name in enumerate(HISTORY_COLUMNS, 1):
        _style_header(ws.cell(row=1, column=col_idx, value=col_name))

    for row_idx, values in enumerate(rows, 2):
        for col_idx, value in enumerate(values, 1):
            ws.cell(row=row_idx, column=col_idx, value=value).border = CELL_BORDER

    for col_idx, width in enumerate((16, 16, 6, 8, 18, 16, 20, 20), 1):
        ws.column_dimensions[get_column_letter(col_idx)].width = width
    ws.freeze_panes = 'A2'


def generate_garden_workbook(store, garden_id):
    """Generate an Excel workbook for one garden.

    Args:
        store: GardenHierarchyStore to read from
        garden_id: Garden to export

    Returns:
        (BytesIO buffer, filename) on success, (None, error) on failure.
    """
    garden, error = store.get_garden(garden_id)
    if error:
        return None, error

    plant_names = {p.id: p.display_name for p in store.catalog.list_plants()}

    wb = openpyxl.Workbook()
    wb.remove(wb.active)
    used_titles = {'History'}
    history_rows = []

    for area in garden.areas:
        for bed in area.beds:
            cells, error = store.list_cells(bed.id)
            if error:
                return None, error
            ws = wb.create_sheet(title=sheet_title(bed.name, used_titles))
            _build_bed_sheet(ws, bed, cells, plant_names)

            for cell in cells:
                for entry in cell.history:
                    history_rows.append((
                        area.name, bed.name, cell.row, cell.column,
                        plant_names.get(entry.plant_id, entry.plant_id),
                        entry.plant_family,
                        entry.planted_date.isoformat(timespec='seconds'),
                        entry.harvested_date.isoformat(timespec='seconds') if entry.harvested_date else '',
                    ))

    history_rows.sort(key=lambda r: (r[6], r[0], r[1], r[2], r[3]))
    _build_history_sheet(wb.create_sheet(title='History'), history_rows)

    buffer = BytesIO()
    wb.save(buffer)
    buffer.seek(0)

    safe_name = re.sub(r'[^A-Za-z0-9_-]+', '_', garden.name).strip('_') or 'garden'
    filename = f"garden_{garden.id}_{safe_name}.xlsx"
    return buffer, filename
