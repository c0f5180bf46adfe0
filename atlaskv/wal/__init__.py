"""Write-ahead log: record format, writer, reader and recovery."""