"""
Portal selectors and visible texts.

The portal is an unversioned contract: every label, placeholder, and CSS
hook the automation depends on is collected here so that a portal change
is a one-line edit.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class PortalSelectors:
    # Login page
    clinic_placeholder: str = "Pilih Klinik"
    username_placeholder: str = "ID Pengguna"
    password_placeholder: str = "Kata Sandi"
    login_button: str = "Login"
    dashboard_url_glob: str = "**/dashboard**"
    login_form_fields: tuple[str, ...] = (
        'input[placeholder="Pilih Klinik"]',
        'input[placeholder="ID Pengguna"]',
        'input[placeholder="Kata Sandi"]',
    )
    login_error_texts: tuple[str, ...] = (
        "salah",
        "tidak valid",
        "gagal",
        "invalid",
        "incorrect",
    )

    # Anti-bot interstitial ("please wait" titles, lowercased substrings)
    challenge_titles: tuple[str, ...] = (
        "just a moment",
        "please wait",
        "checking your browser",
        "attention required",
        "verifying you are human",
        "one more step",
        "tunggu sebentar",
        "mohon tunggu",
        "harap tunggu",
        "un instant",
        "einen moment",
        "un momento",
        "um momento",
    )
    challenge_url_markers: tuple[str, ...] = ("cdn-cgi/challenge", "__cf_chl")

    # Menu
    reports_menu_button: str = "Laporan"
    daily_revenue_link: str = "Laporan Pendapatan Harian"

    # Date range
    start_date_placeholder: str = "Tanggal Awal"
    end_date_placeholder: str = "Tanggal Akhir"
    calendar_switch: str = ".datepicker-days .datepicker-switch"
    calendar_next: str = ".datepicker-days .next"
    calendar_prev: str = ".datepicker-days .prev"
    calendar_day_cell: str = 'td[data-day="{value}"]'

    # Filters
    select_all_toggles: tuple[str, ...] = (
        "#selectAllPuskesmas",
        "#selectAllAsuransi",
        "#selectAllRuangan",
    )
    submit_button: str = "Tampilkan"

    # Results
    result_row: str = "table tbody tr"
    report_table: str = "table"


DEFAULT_SELECTORS = PortalSelectors()
