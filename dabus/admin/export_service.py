"""
Excel export of trips and bookings.

Each sheet carries a title row, an export timestamp row, then the table with
its header on row 4, matching the layout of the operations team's reports.
"""

import io
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import pandas as pd
from openpyxl.styles import Alignment, Font, PatternFill

EXCEL_MEDIA_TYPE = "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"

TRIPS_SHEET = "Trajets"
BOOKINGS_SHEET = "Réservations"
HEADER_ROW = 4  # 1-based row holding the column headers

TRIP_COLUMNS = [
    "ID", "Origine", "Destination", "Date", "Heure", "Capacité",
    "Places disponibles", "Prix (XOF)", "Statut", "Créé le"
]

BOOKING_COLUMNS = [
    "ID Réservation", "Date création", "Client", "Téléphone", "Trajet",
    "Origine", "Destination", "Date trajet", "Prix (XOF)",
    "Statut paiement", "Statut réservation"
]


def _format_timestamp(value: Optional[datetime]) -> str:
    if value is None:
        return ""
    return value.strftime("%d/%m/%Y %H:%M:%S")


def _value(enum_or_value: Any) -> Any:
    return getattr(enum_or_value, "value", enum_or_value)


def trips_frame(trips: List[Dict[str, Any]]) -> pd.DataFrame:
    rows = []
    for trip in trips:
        rows.append({
            "ID": trip["id"],
            "Origine": trip["origin"],
            "Destination": trip["destination"],
            "Date": str(trip["departure_date"]),
            "Heure": trip["departure_time"].strftime("%H:%M") if trip["departure_time"] else "",
            "Capacité": trip["capacity"],
            "Places disponibles": trip["available_seats"],
            "Prix (XOF)": trip["price"],
            "Statut": _value(trip["status"]),
            "Créé le": _format_timestamp(trip["created_at"]),
        })
    return pd.DataFrame(rows, columns=TRIP_COLUMNS)


def bookings_frame(bookings: List[Dict[str, Any]]) -> pd.DataFrame:
    rows = []
    for booking in bookings:
        trip = booking.get("trip")
        rows.append({
            "ID Réservation": booking["id"],
            "Date création": _format_timestamp(booking["created_at"]),
            "Client": booking["full_name"] or "N/A",
            "Téléphone": booking["phone"] or "N/A",
            "Trajet": f"{trip['origin']} → {trip['destination']}" if trip else "N/A",
            "Origine": trip["origin"] if trip else "N/A",
            "Destination": trip["destination"] if trip else "N/A",
            "Date trajet": str(trip["departure_date"]) if trip else "N/A",
            "Prix (XOF)": trip["price"] if trip else 0,
            "Statut paiement": _value(booking["payment_status"]),
            "Statut réservation": _value(booking["status"]),
        })
    return pd.DataFrame(rows, columns=BOOKING_COLUMNS)


def _decorate_sheet(worksheet, title: str, column_count: int, exported_at: datetime) -> None:
    last_column = worksheet.cell(row=1, column=column_count).column_letter

    worksheet.merge_cells(f"A1:{last_column}1")
    worksheet["A1"] = title
    worksheet["A1"].font = Font(bold=True, size=16)
    worksheet["A1"].alignment = Alignment(horizontal="center")

    worksheet.merge_cells(f"A2:{last_column}2")
    worksheet["A2"] = f"Exporté le : {exported_at.strftime('%d/%m/%Y %H:%M:%S')}"
    worksheet["A2"].font = Font(italic=True, size=10)
    worksheet["A2"].alignment = Alignment(horizontal="center")

    header_fill = PatternFill(fill_type="solid", fgColor="FF4472C4")
    for column in range(1, column_count + 1):
        cell = worksheet.cell(row=HEADER_ROW, column=column)
        cell.font = Font(bold=True, color="FFFFFFFF")
        cell.fill = header_fill
        cell.alignment = Alignment(horizontal="center")
        worksheet.column_dimensions[cell.column_letter].width = 20


def build_workbook(sheets: List[Tuple[str, pd.DataFrame]], exported_at: Optional[datetime] = None) -> bytes:
    """Render the given (sheet name, frame) pairs into an .xlsx file"""
    exported_at = exported_at or datetime.now(timezone.utc)
    output = io.BytesIO()
    with pd.ExcelWriter(output, engine="openpyxl") as writer:
        for name, frame in sheets:
            frame.to_excel(writer, sheet_name=name, index=False, startrow=HEADER_ROW - 1)
            _decorate_sheet(writer.sheets[name], name, len(frame.columns), exported_at)
    return output.getvalue()


def export_filename(kind: str, day: Optional[datetime] = None) -> str:
    day = day or datetime.now(timezone.utc)
    return f"dabus-{kind}-{day.strftime('%Y-%m-%d')}.xlsx"


def export_trips(trips: List[Dict[str, Any]]) -> Tuple[str, bytes]:
    return export_filename("trajets"), build_workbook([(TRIPS_SHEET, trips_frame(trips))])


def export_bookings(bookings: List[Dict[str, Any]]) -> Tuple[str, bytes]:
    return export_filename("reservations"), build_workbook([(BOOKINGS_SHEET, bookings_frame(bookings))])


def export_full_report(trips: List[Dict[str, Any]], bookings: List[Dict[str, Any]]) -> Tuple[str, bytes]:
    content = build_workbook([
        (TRIPS_SHEET, trips_frame(trips)),
        (BOOKINGS_SHEET, bookings_frame(bookings)),
    ])
    return export_filename("rapport-complet"), content
