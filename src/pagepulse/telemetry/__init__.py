"""Network telemetry capture pipeline.

``collector`` turns Playwright ``requestfinished`` events into telemetry rows;
``writer`` hands them to the datastore without blocking the page driver.
"""
