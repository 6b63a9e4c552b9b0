# concurlab

A set of small experiments that you can run to see how concurrent programs
behave. They cover:

- many threads adding to one counter;
- how long it takes to start a thread compared with forking a process;
- a resource scheduler that uses a semaphore;
- a bounded buffer shared by producers and consumers;
- a ring buffer kept in a file and shared by worker threads.

## Installation

```
pip install .
```

To run the test suite:

```
pip install ".[test]"
pytest
```

## Commands

Each experiment can also be run as a command.

| Command | What it does |
| --- | --- |
| `concurlab-counters [N [M [V]]] [--strategy S]` | Starts `N` threads. Each thread adds `V` to a total `M` times. The defaults are 1000, 10000 and 1. The command prints the total it got and the total it should have got. If the total is too low, it also prints how many additions were lost. `S` is one of `unsynchronized` (the default), `semaphore`, `slots`, `results` or `queue`. |
| `concurlab-reactivity-threads N` | Starts and joins `N` threads one after another. Each thread writes into a large buffer. The command prints the average time per thread in microseconds. |
| `concurlab-reactivity-processes N` | Does the same with `N` child processes. It uses the `fork` start method where the system has it. Each child writes into its own copy of the buffer. |
| `concurlab-scheduler` | Each line read from standard input (press ENTER) starts a burst of client threads. The clients compete for a limited number of resources. At end of input (CTRL+D) the command waits for every client and then exits. The options are `--resources`, `--tasks`, `--burst`, `--max-sleep` and `--policy {end,alternate}`. |
| `concurlab-transactions` | Producer threads put random deposits and withdrawals into a bounded buffer. Consumer threads take them out and apply them to a balance, and the final balance is printed. The options are `--producers`, `--consumers`, `--operations`, `--buffer-size`, `--seed`, `--max-transaction` and `--pause`. |
| `concurlab-pipeline` | Producer and consumer threads exchange values through a ring buffer kept in a binary file (`bufferfile.bin` by default). The command prints the total produced and the total consumed. The options are `--path`, `--producers`, `--consumers`, `--operations`, `--capacity`, `--seed` and `--pause`. |

## Using it from Python

### Timing

`concurlab.timing.Timer` measures elapsed monotonic time. Call its `begin()`
and `end()` methods, or use it as a context manager. The result is available
from `nanoseconds()`, `microseconds()`, `milliseconds()` and `seconds()`. The
coarser units are truncated toward zero.

### Shared counters

`concurlab.counters` runs the same job in several ways:

- `run_unsynchronized`: the shared total has no protection at all.
- `run_with_semaphore`: each addition is made while holding a binary semaphore, and the run is timed.
- `run_per_thread_slots`: each thread adds into its own slot of a list, and the slots are summed after the join.
- `run_thread_results`: each thread returns its partial sum.
- `run_ticket_queue`: threads wait in a `ThreadQueue` until they reach the head. The additions themselves are still unprotected.

Each of these functions returns a `CounterReport`. Its `expected()`,
`lost_adds()` and `lines()` methods give the figures and text that the command
prints.

### Producers and consumers

`concurlab.transactions.simulate` runs the threaded bounded-buffer simulation.
The buffer is a `TransactionBuffer`, and the function returns a
`SimulationResult`. `random_transaction` produces one non-zero amount.

`concurlab.ringfile.RingFile` is the ring buffer stored on disk. A file holds:

- `capacity` little-endian 32-bit cells;
- the read index;
- the write index.

`concurlab.filepipeline.run_pipeline` creates the file and drives it with
producer and consumer threads. It returns a `PipelineResult`.

## What is not included

There is no network server here. None of the experiments listens on a socket
or serves clients over TCP. Shared resource counters are exercised only by
threads inside one process.