"""
------------------------------------------------------------------------------
Project:        ChartDeck
File:           core/__init__.py
Version:        1.0.0
Description:    Core logic package for ChartDeck. Contains the report and
                chart models, the reporting service client, editing,
                layout, rendering and export modules.
------------------------------------------------------------------------------
"""
