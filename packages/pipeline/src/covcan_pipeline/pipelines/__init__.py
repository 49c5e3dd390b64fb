"""
covcan_pipeline.pipelines — End-to-end pipeline orchestrators.

    from covcan_pipeline.pipelines import coverage

    result = coverage.run(splice_start=date(2021, 8, 1))
"""
