"""
Create DynamoDB tables for local development

Usage:
    python -m purrfectcare.scripts.create_tables_local   (from backend/)
"""

import boto3
from botocore.exceptions import ClientError
import sys
import os

# Add parent directory to path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../..')))

from purrfectcare.config import settings  # noqa: E402
from purrfectcare.services.db import OWNER_INDEX, PET_INDEX, STATUS_INDEX  # noqa: E402


def _gsi(index_name: str, hash_key: str):
    return {
        'IndexName': index_name,
        'KeySchema': [
            {'AttributeName': hash_key, 'KeyType': 'HASH'},
            {'AttributeName': 'due_date', 'KeyType': 'RANGE'},
        ],
        'Projection': {'ProjectionType': 'ALL'},
    }


PROVISIONED_THROUGHPUT = {'ReadCapacityUnits': 5, 'WriteCapacityUnits': 5}


def billing_kwargs(indexes=None):
    """Billing arguments for create_table from DYNAMODB_BILLING_MODE"""
    if settings.DYNAMODB_BILLING_MODE == 'PAY_PER_REQUEST':
        return {'BillingMode': 'PAY_PER_REQUEST'}, indexes

    # Provisioned tables need throughput on the table and on every GSI
    indexes = [dict(index, ProvisionedThroughput=PROVISIONED_THROUGHPUT) for index in indexes or []]
    return {'BillingMode': 'PROVISIONED', 'ProvisionedThroughput': PROVISIONED_THROUGHPUT}, indexes


def table_definitions():
    """Key schemas and indexes of every table the service reads or writes"""
    return [
        {
            'name': settings.DYNAMODB_TABLE_REMINDERS,
            'key_schema': [
                {'AttributeName': 'reminder_id', 'KeyType': 'HASH'}
            ],
            'attribute_definitions': [
                {'AttributeName': 'reminder_id', 'AttributeType': 'S'},
                {'AttributeName': 'pet_id', 'AttributeType': 'S'},
                {'AttributeName': 'owner_id', 'AttributeType': 'S'},
                {'AttributeName': 'status', 'AttributeType': 'S'},
                {'AttributeName': 'due_date', 'AttributeType': 'S'},
            ],
            'indexes': [
                _gsi(PET_INDEX, 'pet_id'),
                _gsi(OWNER_INDEX, 'owner_id'),
                _gsi(STATUS_INDEX, 'status'),
            ],
        },
        {
            'name': settings.DYNAMODB_TABLE_PETS,
            'key_schema': [
                {'AttributeName': 'pet_id', 'KeyType': 'HASH'}
            ],
            'attribute_definitions': [
                {'AttributeName': 'pet_id', 'AttributeType': 'S'}
            ],
        },
        {
            'name': settings.DYNAMODB_TABLE_USERS,
            'key_schema': [
                {'AttributeName': 'user_id', 'KeyType': 'HASH'}
            ],
            'attribute_definitions': [
                {'AttributeName': 'user_id', 'AttributeType': 'S'}
            ],
        },
    ]


def create_tables(dynamodb=None):
    """
    Create all required DynamoDB tables

    Args:
        dynamodb: Optional boto3 DynamoDB client (defaults to DynamoDB Local)
    """
    print("Creating DynamoDB tables...")

    if dynamodb is None:
        print(f"Endpoint: {settings.dynamodb_endpoint}")
        print(f"Region: {settings.AWS_REGION}")

        dynamodb = boto3.client(
            'dynamodb',
            endpoint_url=settings.dynamodb_endpoint,
            region_name=settings.AWS_REGION,
            aws_access_key_id='local',
            aws_secret_access_key='local'
        )

    for table_config in table_definitions():
        try:
            print(f"\nCreating table: {table_config['name']}")

            kwargs = {
                'TableName': table_config['name'],
                'KeySchema': table_config['key_schema'],
                'AttributeDefinitions': table_config['attribute_definitions'],
            }
            billing, indexes = billing_kwargs(table_config.get('indexes'))
            kwargs.update(billing)
            if indexes:
                kwargs['GlobalSecondaryIndexes'] = indexes

            dynamodb.create_table(**kwargs)

            print(f"Table created: {table_config['name']}")

        except ClientError as e:
            if e.response['Error']['Code'] == 'ResourceInUseException':
                print(f"Table already exists: {table_config['name']}")
            else:
                print(f"Error creating table {table_config['name']}: {e}")
                raise

    print("\nAll tables created successfully!")


if __name__ == "__main__":
    create_tables()
