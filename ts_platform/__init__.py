# ts_platform: data model, configuration, remote adapter and sync engine.
