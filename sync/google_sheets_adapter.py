# sync/google_sheets_adapter.py


def sheet_url(spreadsheet_id: str) -> str:
    return f"https://docs.google.com/spreadsheets/d/{spreadsheet_id}/edit"


class GoogleSheetsAdapter:
    """
    Thin wrapper over one tab of one spreadsheet.
    Raises whatever the client raises; callers translate errors.
    """

    def __init__(self, spreadsheet_id: str, sheet_tab: str, service):
        self.spreadsheet_id = spreadsheet_id
        self.sheet_tab = sheet_tab
        self.service = service

    @property
    def _tab_ref(self) -> str:
        escaped = self.sheet_tab.replace("'", "''")
        return f"'{escaped}'"

    def fetch_sheet_titles(self) -> list[str]:
        meta = self.service.spreadsheets().get(
            spreadsheetId=self.spreadsheet_id,
            fields="sheets.properties.title",
        ).execute()

        return [
            s.get("properties", {}).get("title")
            for s in meta.get("sheets", [])
        ]

    def tab_exists(self) -> bool:
        return self.sheet_tab in self.fetch_sheet_titles()

    def add_tab(self):
        self.service.spreadsheets().batchUpdate(
            spreadsheetId=self.spreadsheet_id,
            body={
                "requests": [
                    {"addSheet": {"properties": {"title": self.sheet_tab}}}
                ]
            },
        ).execute()

    def fetch_header(self) -> list:
        result = self.service.spreadsheets().values().get(
            spreadsheetId=self.spreadsheet_id,
            range=f"{self._tab_ref}!1:1",
        ).execute()

        rows = result.get("values", [])
        return rows[0] if rows else []

    def write_header(self, labels: list[str]):
        self.service.spreadsheets().values().update(
            spreadsheetId=self.spreadsheet_id,
            range=f"{self._tab_ref}!A1",
            valueInputOption="RAW",
            body={"values": [labels]},
        ).execute()

    def append_row(self, values: list):
        self.service.spreadsheets().values().append(
            spreadsheetId=self.spreadsheet_id,
            range=f"{self._tab_ref}!A1",
            valueInputOption="USER_ENTERED",
            insertDataOption="INSERT_ROWS",
            body={"values": [values]},
        ).execute()
