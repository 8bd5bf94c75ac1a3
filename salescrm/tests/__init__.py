"""Test suite for the Sales CRM reporting backend."""
