"""
Kitchen cabinetry configure-price-quote engine.

Pure rule engine over a read-only catalog: products, processings, rules and
product dependencies in; immutable Quote snapshots out.
"""
