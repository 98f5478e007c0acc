"""Write-back of new event rows to the canonical store."""
import hashlib
import logging
import time
from typing import Dict, List

import boto3
from botocore.exceptions import ClientError

logger = logging.getLogger(__name__)


class LoggingSheetWriter:
    """Writer that only logs the rows it would append."""

    def append_rows(self, sheet_id: str, rows: List[Dict[str, str]]) -> int:
        logger.info(f"Updating Google Sheet {sheet_id} with {len(rows)} rows")
        for row in rows:
            logger.info(f"Row to append: {row}")
        return 0

    def get_rows(self, sheet_id: str) -> List[Dict[str, str]]:
        # Nothing is persisted, so there is nothing to read back
        return []


class DynamoDBSheetWriter:
    """Writer appending event rows to a DynamoDB table."""

    BATCH_SIZE = 25  # DynamoDB batch operation limit

    def __init__(self, table_name: str):
        """
        Initialize DynamoDB client and table reference.

        Args:
            table_name: Name of the DynamoDB table
        """
        self.table_name = table_name
        self.dynamodb = boto3.resource('dynamodb')
        self.table = self.dynamodb.Table(table_name)
        logger.info(f"Initialized DynamoDBSheetWriter for table: {table_name}")

    def append_rows(self, sheet_id: str, rows: List[Dict[str, str]]) -> int:
        """
        Append rows to the table in batches of 25 items.

        Args:
            sheet_id: ID of the sheet the rows belong to
            rows: Rows in the canonical sheet schema

        Returns:
            Count of written rows

        Raises:
            ClientError: If a batch write fails
        """
        if not rows:
            return 0

        logger.info(f"Appending {len(rows)} rows for sheet {sheet_id}")
        appended_at = int(time.time())
        written = 0

        for i in range(0, len(rows), self.BATCH_SIZE):
            batch = rows[i:i + self.BATCH_SIZE]

            try:
                with self.table.batch_writer() as writer:
                    for row in batch:
                        writer.put_item(Item=self._row_to_item(sheet_id, row, appended_at))
                        written += 1
            except ClientError as e:
                logger.error(
                    f"Error writing batch {i // self.BATCH_SIZE + 1}: {e}"
                )
                raise

        logger.info(f"Successfully appended {written} rows")
        return written

    def get_rows(self, sheet_id: str) -> List[Dict[str, str]]:
        """
        Retrieve rows appended for a sheet using a paginated Scan.

        Args:
            sheet_id: ID of the sheet

        Returns:
            List of row dictionaries in the canonical sheet schema
        """
        logger.info(f"Scanning {self.table_name} for rows of sheet {sheet_id}")

        try:
            response = self.table.scan()
            items = response.get('Items', [])

            while 'LastEvaluatedKey' in response:
                response = self.table.scan(
                    ExclusiveStartKey=response['LastEvaluatedKey']
                )
                items.extend(response.get('Items', []))
        except ClientError as e:
            logger.error(f"Error scanning DynamoDB table: {e}")
            raise

        return [
            {k: v for k, v in item.items() if k not in ('row_id', 'sheet_id', 'appended_at')}
            for item in items
            if item.get('sheet_id') == sheet_id
        ]

    @staticmethod
    def generate_row_id(sheet_id: str, row: Dict[str, str]) -> str:
        """
        Generate a stable row id from the sheet id, event name and start.

        Returns:
            SHA256 hex digest
        """
        composite = f"{sheet_id}|{row.get('evento', '')}|{row.get('horário_de_início', '')}"
        return hashlib.sha256(composite.encode('utf-8')).hexdigest()

    def _row_to_item(self, sheet_id: str, row: Dict[str, str], appended_at: int) -> dict:
        item = dict(row)
        item['row_id'] = self.generate_row_id(sheet_id, row)
        item['sheet_id'] = sheet_id
        item['appended_at'] = appended_at
        return item
