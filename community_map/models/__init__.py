"""
Data Models Module
----------------
Contains Pydantic models for data validation and serialization.
Defines the structure of member records, resolved coordinates and geocoded output.
"""
